import itertools
import os
import threading
from collections import deque
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from typing import Deque, Iterable, Iterator, List, Optional, Sequence, Tuple

from mapping import CIPHER_ALPHABET, PLAIN_ALPHABET, Mapping, MappingConflict
from word_index import WordIndex

# --- Configuration ---
MAX_PREFIX = 25
CHUNK_SIZE = 64  # permutations per submitted task


class CrackError(RuntimeError):
    """The search exhausted every prefix size without a valid decoding."""


def prefix_mapping(prefix: Sequence[int]) -> Mapping:
    """Assign ciphertext letter prefix[i] to the i-th plaintext letter."""
    mapping = Mapping()
    for i, c in enumerate(prefix):
        mapping = mapping.set(CIPHER_ALPHABET[c], PLAIN_ALPHABET[i])
    return mapping


def complete(mapping: Mapping, k: Optional[int] = None, offset: int = 0) -> Mapping:
    """Extend a prefix mapping over plaintext letters k..25.

    Ciphertext letters are scanned cyclically starting at `offset`; the ones
    still unassigned receive the remaining plaintext letters in scan order.
    """
    if k is None:
        k = mapping.assigned()
    if 26 - mapping.assigned() < 26 - k:
        raise ValueError(f"prefix of size {k} does not fit a mapping with {mapping.assigned()} letters set")

    result = mapping
    di = offset % 26
    for i in range(k, 26):
        while result.assignment[di] is not None:
            di = (di + 1) % 26
        result = result.set(CIPHER_ALPHABET[di], PLAIN_ALPHABET[i])
    return result


def is_valid(mapping: Mapping, tokens: Iterable[str], index: WordIndex) -> bool:
    return all(index.contains(mapping.apply(token)) for token in tokens)


def _chunked(iterable: Iterable, size: int) -> Iterator[List]:
    it = iter(iterable)
    while True:
        chunk = list(itertools.islice(it, size))
        if not chunk:
            return
        yield chunk


class Cracker:
    """Iterative-deepening search over prefix sizes, fanned out on a thread pool.

    For each prefix size k every ordered choice of k ciphertext letters is
    tried with all 26 completions. The first valid completion at the smallest
    k wins. With `deterministic=True` the winner is the first valid
    (permutation, offset) in lexicographic order instead of whichever worker
    finishes first.
    """

    def __init__(self, ciphertext: str, index: WordIndex, max_workers: Optional[int] = None,
                 max_prefix: int = MAX_PREFIX, chunk_size: int = CHUNK_SIZE,
                 deterministic: bool = False, verbose: bool = True):
        if not 0 <= max_prefix <= 25:
            raise ValueError(f"max_prefix must be between 0 and 25, got {max_prefix}")
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if max_workers is None:
            max_workers = min(32, (os.cpu_count() or 1) + 4)

        self.ciphertext = ciphertext
        self.tokens: Tuple[str, ...] = tuple(ciphertext.split(" "))
        self.index = index
        self.max_workers = max_workers
        self.max_prefix = max_prefix
        self.chunk_size = chunk_size
        self.deterministic = deterministic
        self.verbose = verbose

    def is_feasible(self) -> bool:
        """False when some token length has no dictionary words at all."""
        return all(self.index.bucket(len(token)) for token in self.tokens)

    def try_prefix(self, prefix: Sequence[int]) -> Optional[Mapping]:
        try:
            mapping = prefix_mapping(prefix)
        except MappingConflict:
            return None

        k = len(prefix)
        for offset in range(26):
            candidate = complete(mapping, k, offset)
            if is_valid(candidate, self.tokens, self.index):
                return candidate
        return None

    def _try_chunk(self, chunk: List[Tuple[int, ...]], stop: threading.Event) -> Optional[Mapping]:
        for prefix in chunk:
            if stop.is_set():
                return None
            result = self.try_prefix(prefix)
            if result is not None:
                return result
        return None

    def _search_level(self, executor: ThreadPoolExecutor, k: int) -> Optional[Mapping]:
        chunks = _chunked(itertools.permutations(range(26), k), self.chunk_size)
        pending: Deque = deque()
        stop = threading.Event()
        window = self.max_workers * 4

        def submit_next() -> bool:
            chunk = next(chunks, None)
            if chunk is None:
                return False
            pending.append(executor.submit(self._try_chunk, chunk, stop))
            return True

        try:
            while len(pending) < window and submit_next():
                pass

            while pending:
                if self.deterministic:
                    done = [pending.popleft()]
                else:
                    done, _ = wait(pending, return_when=FIRST_COMPLETED)
                    for future in done:
                        pending.remove(future)

                for future in done:
                    result = future.result()
                    if result is not None:
                        return result
                    submit_next()
            return None
        finally:
            stop.set()
            for future in pending:
                future.cancel()

    def crack(self) -> Optional[Mapping]:
        if not self.is_feasible():
            if self.verbose:
                missing = sorted({len(t) for t in self.tokens if not self.index.bucket(len(t))})
                print(f"[Search] No dictionary words of length {missing}; nothing can match.")
            return None

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            for k in range(self.max_prefix + 1):
                if self.verbose:
                    print(f"[Search] trying prefix of length = {k}...")
                result = self._search_level(executor, k)
                if result is not None:
                    return result
        return None


def crack(ciphertext: str, index: WordIndex, **options) -> Optional[Mapping]:
    return Cracker(ciphertext, index, **options).crack()

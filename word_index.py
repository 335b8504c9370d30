import os
from typing import Dict, FrozenSet, Iterable, List, Optional

import requests
from wordfreq import top_n_list

# --- Configuration ---
WORDLIST_URL = "https://raw.githubusercontent.com/dwyl/english-words/master/words_alpha.txt"
CACHE_DIR = os.path.expanduser("~/.cache/cryptoquote")
LOCAL_WORDLIST_FILE = os.path.join(CACHE_DIR, "words_alpha.txt")
DOWNLOAD_TIMEOUT = 20
WORDFREQ_TOP_N = 100000

# Dictionary files are noisy at very short lengths, so these replace buckets 2 and 3.
TWO_LETTER_WORDS = (
    "am", "an", "as", "at", "be", "by", "do", "go", "he", "if", "in", "is", "it",
    "me", "my", "no", "of", "on", "or", "so", "to", "up", "us", "we",
)
THREE_LETTER_WORDS = (
    "all", "and", "any", "are", "boy", "but", "can", "day", "did", "for", "get",
    "had", "has", "her", "him", "his", "how", "its", "let", "man", "new", "not",
    "now", "old", "one", "our", "out", "put", "say", "see", "she", "the", "too",
    "two", "use", "was", "way", "who", "you",
)
SHORT_WORDS = {2: TWO_LETTER_WORDS, 3: THREE_LETTER_WORDS}


class WordIndex:
    """Known words grouped by length, read-only once built."""

    def __init__(self, buckets: Dict[int, Iterable[str]]):
        self._buckets: Dict[int, FrozenSet[str]] = {
            length: frozenset(words) for length, words in buckets.items()
        }

    @classmethod
    def build(cls, words: Iterable[str], max_length: int,
              short_words: Optional[Dict[int, Iterable[str]]] = None) -> "WordIndex":
        if short_words is None:
            short_words = SHORT_WORDS
        buckets: Dict[int, set] = {}
        for w in words:
            w = w.strip().lower()
            if w and len(w) <= max_length:
                buckets.setdefault(len(w), set()).add(w)
        for length, curated in short_words.items():
            buckets[length] = set(curated)
        return cls(buckets)

    def contains(self, word: str) -> bool:
        bucket = self._buckets.get(len(word))
        return bucket is not None and word in bucket

    __contains__ = contains

    def bucket(self, length: int) -> FrozenSet[str]:
        return self._buckets.get(length, frozenset())

    def lengths(self) -> List[int]:
        return sorted(length for length, words in self._buckets.items() if words)

    def __len__(self):
        return sum(len(words) for words in self._buckets.values())

    def __repr__(self):
        sizes = ", ".join(f"{length}: {len(self._buckets[length])}" for length in sorted(self._buckets))
        return f"WordIndex({{{sizes}}})"


def parse_wordlist(text: str) -> List[str]:
    return [w.strip() for w in text.splitlines() if w.strip()]


def _read_wordlist(path: str) -> List[str]:
    with open(path, "r", encoding="utf-8") as f:
        return parse_wordlist(f.read())


def _write_cache(cache_path: str, text: str):
    # the cache path only ever holds a complete file
    os.makedirs(os.path.dirname(cache_path) or ".", exist_ok=True)
    partial_path = cache_path + ".part"
    with open(partial_path, "w", encoding="utf-8") as f:
        f.write(text)
    os.replace(partial_path, cache_path)


def load_wordlist(path: Optional[str] = None, url: str = WORDLIST_URL,
                  cache_path: str = LOCAL_WORDLIST_FILE, verbose: bool = True) -> List[str]:
    """Load the dictionary: explicit file, then cache, then download, then wordfreq."""
    if path is not None:
        words = _read_wordlist(path)
        if verbose:
            print(f"[Setup] Loaded wordlist from {path}: {len(words)} words.")
        return words

    if os.path.exists(cache_path):
        words = _read_wordlist(cache_path)
        if verbose:
            print(f"[Setup] Loaded cached wordlist: {len(words)} words.")
        return words

    try:
        if verbose:
            print(f"[Setup] Downloading wordlist from: {url}")
        response = requests.get(url, timeout=DOWNLOAD_TIMEOUT)
        response.raise_for_status()
        text = response.text
    except requests.RequestException as e:
        print(f"[Warning] Wordlist download failed, using wordfreq top {WORDFREQ_TOP_N}: {e}")
        return list(top_n_list("en", WORDFREQ_TOP_N))

    words = parse_wordlist(text)
    try:
        _write_cache(cache_path, text)
    except OSError as e:
        print(f"[Warning] Could not cache wordlist at {cache_path}: {e}")
    else:
        if verbose:
            print(f"[Setup] Cached wordlist at {cache_path}")
    if verbose:
        print(f"[Setup] Loaded wordlist: {len(words)} words.")
    return words


def longest_token(ciphertext: str) -> int:
    return max(len(token) for token in ciphertext.split(" "))


def load_word_index(ciphertext: str, path: Optional[str] = None, verbose: bool = True,
                    **kwargs) -> WordIndex:
    words = load_wordlist(path, verbose=verbose, **kwargs)
    return WordIndex.build(words, longest_token(ciphertext))

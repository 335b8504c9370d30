import string
from typing import Optional, Sequence, Tuple

CIPHER_ALPHABET = string.ascii_uppercase
PLAIN_ALPHABET = string.ascii_lowercase


class MappingConflict(ValueError):
    """Raised when a letter assignment contradicts the current mapping."""


def _cipher_index(c: str) -> int:
    if len(c) != 1 or c not in CIPHER_ALPHABET:
        raise ValueError(f"ciphertext letter must be one of A-Z, got {c!r}")
    return ord(c) - ord("A")


def _plain_index(l: str) -> int:
    if len(l) != 1 or l not in PLAIN_ALPHABET:
        raise ValueError(f"plaintext letter must be one of a-z, got {l!r}")
    return ord(l) - ord("a")


class Mapping:
    """Partial substitution from ciphertext letters (A-Z) to plaintext letters (a-z).

    Values are immutable: `set` returns a new Mapping and leaves the original
    untouched, so a Mapping can be shared between search workers freely.
    `used` is the bitset of plaintext letters taken, always derived from the table.
    """

    __slots__ = ("_table", "_used")

    def __init__(self, table: Optional[Sequence[Optional[str]]] = None):
        if table is None:
            table = (None,) * 26
        if len(table) != 26:
            raise ValueError(f"mapping table needs 26 entries, got {len(table)}")
        used = 0
        for c, l in zip(CIPHER_ALPHABET, table):
            if l is None:
                continue
            bit = 1 << _plain_index(l)
            if used & bit:
                raise MappingConflict(f"{l} is the decoding of more than one letter, including {c}")
            used |= bit
        self._table = tuple(table)
        self._used = used

    @classmethod
    def _with(cls, table: Tuple[Optional[str], ...], used: int) -> "Mapping":
        mapping = cls.__new__(cls)
        mapping._table = table
        mapping._used = used
        return mapping

    @property
    def assignment(self) -> Tuple[Optional[str], ...]:
        return self._table

    @property
    def used(self) -> int:
        return self._used

    def get(self, c: str) -> Optional[str]:
        return self._table[_cipher_index(c)]

    def set(self, c: str, l: str) -> "Mapping":
        idx_c = _cipher_index(c)
        idx_l = _plain_index(l)
        current = self._table[idx_c]

        if current == l:
            return Mapping._with(self._table, self._used)
        if current is not None:
            raise MappingConflict(f"{c} already decodes to {current}, not {l}")
        if self._used & (1 << idx_l):
            raise MappingConflict(f"{l} is already the decoding of another letter")

        table = list(self._table)
        table[idx_c] = l
        return Mapping._with(tuple(table), self._used | (1 << idx_l))

    def apply(self, text: str) -> str:
        table = self._table
        return "".join(
            (table[ord(c) - ord("A")] or c) if "A" <= c <= "Z" else c
            for c in text
        )

    def assigned(self) -> int:
        return sum(1 for l in self._table if l is not None)

    def is_complete(self) -> bool:
        return self.assigned() == 26

    def cipher_disk(self) -> str:
        """For each plaintext letter a-z, the ciphertext letter that decodes to it ('?' if none)."""
        disk = ["?"] * 26
        for idx_c, l in enumerate(self._table):
            if l is not None:
                disk[ord(l) - ord("a")] = CIPHER_ALPHABET[idx_c]
        return "".join(disk)

    def __eq__(self, other):
        if not isinstance(other, Mapping):
            return NotImplemented
        return self._table == other._table

    def __hash__(self):
        return hash(self._table)

    def __repr__(self):
        pairs = " ".join(f"{c}->{l}" for c, l in zip(CIPHER_ALPHABET, self._table) if l is not None)
        return f"Mapping({pairs})"

import itertools
import string

import pytest

from cracker import Cracker, complete, crack, is_valid, prefix_mapping
from mapping import Mapping, MappingConflict
from word_index import WordIndex

CURATED = WordIndex.build([], max_length=3)


def first_valid(ciphertext, index, max_prefix):
    """Reference scan: lexicographic over prefix size, permutation, then offset."""
    tokens = ciphertext.split(" ")
    for k in range(max_prefix + 1):
        for prefix in itertools.permutations(range(26), k):
            mapping = prefix_mapping(prefix)
            for offset in range(26):
                candidate = complete(mapping, k, offset)
                if is_valid(candidate, tokens, index):
                    return candidate
    return None


def test_prefix_mapping_assigns_plain_letters_in_order():
    m = prefix_mapping((2, 0, 25))
    assert m.get("C") == "a"
    assert m.get("A") == "b"
    assert m.get("Z") == "c"
    assert m.assigned() == 3


def test_complete_without_prefix_is_a_rotation():
    m = complete(Mapping(), 0, 3)
    assert m.get("D") == "a"
    assert m.get("Z") == "w"
    assert m.get("A") == "x"
    assert m.get("C") == "z"


def test_complete_skips_prefix_letters():
    m = complete(prefix_mapping((3,)), 1, 2)
    assert m.get("D") == "a"
    assert m.get("C") == "b"
    assert m.get("E") == "c"
    assert m.get("B") == "z"


@pytest.mark.parametrize("prefix", [(), (0,), (25, 1), (4, 9, 0, 17), tuple(range(25, 12, -1))])
def test_completion_covers_every_letter_once(prefix):
    base = prefix_mapping(prefix)
    for offset in range(26):
        m = complete(base, len(prefix), offset)
        assert m.is_complete()
        assert sorted(m.assignment) == list(string.ascii_lowercase)
        assert "?" not in m.cipher_disk()
        assert m.used == (1 << 26) - 1
        for i, c in enumerate(prefix):
            assert m.get(string.ascii_uppercase[c]) == string.ascii_lowercase[i]


def test_complete_rejects_oversized_prefix():
    with pytest.raises(ValueError):
        complete(prefix_mapping((0, 1)), 1, 0)


def test_complete_reports_conflicting_prefix():
    # the prefix took "z" instead of "a", so the completion cannot place "z"
    mapping = Mapping().set("A", "z")
    with pytest.raises(MappingConflict):
        complete(mapping, 1, 0)


@pytest.mark.parametrize("letter", ["A", "M", "X", "Z"])
def test_single_letter_decodes_to_a(letter):
    index = WordIndex({1: {"a"}})
    result = crack(letter, index, verbose=False)
    assert result is not None
    assert result.get(letter) == "a"
    assert result.apply(letter) == "a"


def test_empty_bucket_reports_failure():
    index = WordIndex({1: set()})
    assert crack("X", index, verbose=False) is None


def test_short_words_missing_reports_failure(capsys):
    index = WordIndex.build(["hello"], max_length=5, short_words={2: (), 3: ()})
    assert crack("AB CDE", index) is None
    assert "nothing can match" in capsys.readouterr().out


def test_double_space_token_can_never_match():
    assert crack("WKH  PDQ", CURATED, verbose=False) is None


def test_non_bijective_decodings_are_never_returned():
    index = WordIndex({2: {"aa"}})
    assert crack("AB", index, max_prefix=1, verbose=False) is None


def test_caesar_shift_is_solved_without_a_prefix(capsys):
    ciphertext = "WKH PDQ"
    result = crack(ciphertext, CURATED, deterministic=True)
    assert result is not None
    assert result == first_valid(ciphertext, CURATED, 0)
    assert is_valid(result, ciphertext.split(" "), CURATED)
    assert "[Search] trying prefix of length = 0..." in capsys.readouterr().out


def test_deterministic_mode_returns_first_solution_in_order():
    # encoded with the completion of prefix (5,) at offset 0
    ciphertext = "THD MFN"
    expected = first_valid(ciphertext, CURATED, 2)
    assert expected is not None
    for chunk_size in (1, 7, 64):
        result = Cracker(ciphertext, CURATED, max_workers=4, chunk_size=chunk_size,
                         max_prefix=2, deterministic=True, verbose=False).crack()
        assert result == expected


def test_race_mode_returns_a_valid_solution():
    ciphertext = "THD MFN"
    result = Cracker(ciphertext, CURATED, max_workers=4, chunk_size=3, verbose=False).crack()
    assert result is not None
    assert result.is_complete()
    for token in ciphertext.split(" "):
        assert CURATED.contains(result.apply(token))


def test_try_prefix_returns_none_when_no_offset_validates():
    cracker = Cracker("AB", WordIndex({2: {"aa"}}), verbose=False)
    assert cracker.try_prefix((0, 1)) is None
    assert cracker.try_prefix(()) is None


def test_feasibility_check():
    assert Cracker("AB CDE", CURATED, verbose=False).is_feasible()
    assert not Cracker("ABCD", CURATED, verbose=False).is_feasible()


@pytest.mark.parametrize("options", [{"max_prefix": 26}, {"max_prefix": -1}, {"chunk_size": 0}])
def test_bad_options(options):
    with pytest.raises(ValueError):
        Cracker("AB", CURATED, **options)


def test_concurrent_cracks_on_one_cracker_do_not_interfere():
    from concurrent.futures import ThreadPoolExecutor

    ciphertext = "THD MFN"
    cracker = Cracker(ciphertext, CURATED, max_workers=2, chunk_size=2, verbose=False)
    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(lambda _: cracker.crack(), range(4)))
    for result in results:
        assert result is not None
        assert is_valid(result, ciphertext.split(" "), CURATED)

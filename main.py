import argparse
import sys
import time
from typing import List, Optional

from cracker import MAX_PREFIX, Cracker, CrackError
from mapping import PLAIN_ALPHABET, Mapping
from word_index import WordIndex, load_word_index

DEFAULT_CIPHERTEXT = "PRCSOFQX FP QDR AFOPQ CZSPR LA JFPALOQSKR QDFP FP ZK LIU BROJZK MOLTROE"
SEPARATOR = "=" * 20


# -----------------------------
# 1. Preprocess
# -----------------------------
def preprocess(ciphertext: str) -> str:
    lines = (line.strip() for line in ciphertext.splitlines())
    return " ".join(line for line in lines if line).upper()


# -----------------------------
# 2. Presentation
# -----------------------------
def format_cipher_disk(mapping: Mapping) -> str:
    """Plaintext alphabet over the ciphertext letter encoding each one."""
    return f"{PLAIN_ALPHABET}\n{mapping.cipher_disk()}"


def format_result(mapping: Mapping, ciphertext: str) -> str:
    lines = [
        "Result Found!",
        SEPARATOR,
        format_cipher_disk(mapping),
        "",
        f"decoded: {mapping.apply(ciphertext)}",
        SEPARATOR,
    ]
    return "\n".join(lines)


# -----------------------------
# 3. Solver entry
# -----------------------------
def run_solver(ciphertext: str, index: Optional[WordIndex] = None, wordlist: Optional[str] = None,
               verbose: bool = True, **options) -> Mapping:
    text = preprocess(ciphertext)
    if index is None:
        index = load_word_index(text, path=wordlist, verbose=verbose)

    start_time = time.time()
    cipher_disk = Cracker(text, index, verbose=verbose, **options).crack()
    if cipher_disk is None:
        raise CrackError("Failed to crack cipher, exhausted all possibilities")
    if verbose:
        print(f"[Result] Solved in {time.time() - start_time:.2f}s")
    return cipher_disk


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="cryptoquote",
        description="Crack a monoalphabetic substitution cipher against a dictionary.",
    )
    p.add_argument("ciphertext", nargs="*", help="Ciphertext (uppercase words separated by spaces)")
    p.add_argument("-f", "--file", help="Read ciphertext from a file ('-' for stdin)")
    p.add_argument("-w", "--wordlist", help="Newline-delimited dictionary file")
    p.add_argument("-j", "--workers", type=int, help="Number of search threads")
    p.add_argument("-k", "--max-prefix", type=int, default=MAX_PREFIX,
                   help="Largest prefix size to try (0-25)")
    p.add_argument("-d", "--deterministic", action="store_true",
                   help="Return the first solution in lexicographic order instead of the first found")
    p.add_argument("-q", "--quiet", action="store_true", help="Only print the result")
    return p.parse_args(argv)


def read_ciphertext(args: argparse.Namespace) -> str:
    if args.file == "-":
        return sys.stdin.read()
    if args.file:
        with open(args.file, "r", encoding="utf-8") as f:
            return f.read()
    if args.ciphertext:
        return " ".join(args.ciphertext)
    return DEFAULT_CIPHERTEXT


def cli(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        ciphertext = preprocess(read_ciphertext(args))
        cipher_disk = run_solver(
            ciphertext,
            wordlist=args.wordlist,
            verbose=not args.quiet,
            max_workers=args.workers,
            max_prefix=args.max_prefix,
            deterministic=args.deterministic,
        )
    except CrackError as e:
        print(f"[Result] {e}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as e:
        print(f"[Error] {e}", file=sys.stderr)
        return 2

    print(format_result(cipher_disk, ciphertext))
    return 0


if __name__ == "__main__":
    sys.exit(cli())

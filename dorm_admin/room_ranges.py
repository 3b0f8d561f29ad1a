# room_ranges.py
"""Room-number range expressions such as ``101-105, 201, 203``.

Each comma separated token is either a single integer or an inclusive
``start-end`` range. Numbers come out as zero-padded (3 digit) labels in the
order they were written. Tokens that do not parse, and ranges whose start is
past their end, are skipped without complaint; callers decide whether an empty
result is an error.
"""
from collections import Counter
from typing import Iterator, List, Optional

PAD_WIDTH = 3
MAX_DIGITS = 9


def _to_int(text: str) -> Optional[int]:
    text = text.strip()
    # plain ascii digits of bounded length; int() would also take "1_0" or "+5"
    if not (text.isascii() and text.isdigit()) or len(text) > MAX_DIGITS:
        return None
    return int(text)


def format_room_number(n: int) -> str:
    return str(n).zfill(PAD_WIDTH)


def iter_room_numbers(expression: str) -> Iterator[str]:
    for token in expression.split(','):
        token = token.strip()
        if not token:
            continue
        if '-' in token:
            start_text, _, end_text = token.partition('-')
            start, end = _to_int(start_text), _to_int(end_text)
            if start is None or end is None or start > end:
                continue
            for n in range(start, end + 1):
                yield format_room_number(n)
        else:
            n = _to_int(token)
            if n is not None:
                yield format_room_number(n)


def parse_room_number_ranges(expression: str) -> List[str]:
    return list(iter_room_numbers(expression))


def find_duplicates(numbers) -> List[str]:
    counts = Counter(numbers)
    return [n for n in counts if counts[n] > 1]

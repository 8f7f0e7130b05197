#!filepath: sctree/utils/text.py
"""
写变换函数时常用的字符串工具。
"""
from __future__ import annotations

import itertools
import re
from typing import List, Mapping, Pattern, Sequence, Union

PatternLike = Union[str, Pattern[str]]


def tokenize(multigraphs: Sequence[PatternLike], text: str) -> List[str]:
    """
    Split ``text`` into tokens defined by regular expressions; everything not
    covered by a match becomes single-character tokens.

    Overlapping matches are merged into one token:

        tokenize([".ː", ".ʷ", "ˈ."], "ˈkʷaksoː") -> ["ˈkʷ", "a", "k", "s", "oː"]
    """
    spans = []
    for mg in multigraphs:
        pattern = re.compile(mg) if isinstance(mg, str) else mg
        spans.extend(m.span() for m in pattern.finditer(text) if m.end() > m.start())

    merged: List[List[int]] = []
    for start, end in sorted(spans):
        if merged and start < merged[-1][1]:
            merged[-1][1] = max(merged[-1][1], end)
        else:
            merged.append([start, end])

    tokens: List[str] = []
    pos = 0
    for start, end in merged:
        tokens.extend(text[pos:start])
        tokens.append(text[start:end])
        pos = end
    tokens.extend(text[pos:])
    return tokens


def expand_variants(
        text: Union[str, Sequence[str]],
        alternatives: Mapping[str, Sequence[str]],
) -> List[str]:
    """
    Every combination of interchangeable tokens.

    ``text`` is a string (one token per character) or a token list, e.g. from
    :func:`tokenize`. With k tokens that have two alternatives each, the
    result has 2**k strings, in ``itertools.product`` order.
    """
    choices = [alternatives.get(tok, (tok,)) for tok in text]
    return ["".join(combo) for combo in itertools.product(*choices)]

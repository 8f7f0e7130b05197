#!filepath: sctree/project/links.py
from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from sctree.core.record import LINK, Record, display_of, duplicates
from sctree.utils.errors import ProjectLoadError


def check_links(sources: Sequence[Record], targets: Sequence[Record]) -> None:
    """
    source / target 的 link 必须：存在、唯一、两边一一对应。
    """
    src_links = [rec.get(LINK) for rec in sources]
    trg_links = [rec.get(LINK) for rec in targets]

    # unique
    for name, links in (("source data", src_links), ("target data", trg_links)):
        dups = duplicates(links)
        if dups:
            raise ProjectLoadError(f"Duplicate links: {dups}", filename=name)

    # missing
    for name, records, links in (
            ("source data", sources, src_links),
            ("target data", targets, trg_links),
    ):
        missing = [display_of(rec) for rec, link in zip(records, links) if link is None]
        if missing:
            raise ProjectLoadError(f"Missing links: {missing}", filename=name)

    # unmatched
    src_set, trg_set = set(src_links), set(trg_links)
    unmatched = sorted(src_set - trg_set, key=str)
    if unmatched:
        raise ProjectLoadError(f"Unmatched links: {unmatched}", filename="source data")
    unmatched = sorted(trg_set - src_set, key=str)
    if unmatched:
        raise ProjectLoadError(f"Unmatched links: {unmatched}", filename="target data")


def pair_by_link(
        sources: Sequence[Record],
        targets: Sequence[Record],
) -> List[Tuple[Record, Record]]:
    """
    按 link 配对（source 与 target 顺序不必一致），保持 source 顺序。
    """
    by_link: Dict[object, Record] = {rec[LINK]: rec for rec in targets}

    pairs = []
    for idx, src in enumerate(sources, start=1):
        link = src.get(LINK)
        if link not in by_link:
            raise ProjectLoadError(
                f"No target with link {link!r}",
                filename="source data",
                index=idx,
                display=src.get("display"),
            )
        pairs.append((src, by_link[link]))
    return pairs

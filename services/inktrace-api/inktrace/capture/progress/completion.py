from typing import Collection, Dict, List, Optional, Sequence, Set
from ..submission.naming import NamingPolicy, file_stem, occurrence_stem


def expected_stems(items: Sequence[str], policy: NamingPolicy = "codepoint") -> List[str]:
    """
    Remote stem each item should end up under. The n-th repeat of a label
    (counting from zero) maps to the n-th dedup suffix, mirroring what the
    upload path resolves to when items are submitted in order.
    """
    seen: Dict[str, int] = {}
    stems = []
    for label in items:
        occurrence = seen.get(label, 0)
        seen[label] = occurrence + 1
        stems.append(occurrence_stem(file_stem(label, policy), occurrence))
    return stems


def completed_indices(items: Sequence[str], names: Collection[str], policy: NamingPolicy = "codepoint") -> Set[int]:
    return {i for i, stem in enumerate(expected_stems(items, policy)) if stem in names}


def index_for_uploaded(items: Sequence[str], uploaded_stem: str, policy: NamingPolicy = "codepoint") -> Optional[int]:
    """Item index matching a freshly uploaded file, without re-listing the remote."""
    for i, stem in enumerate(expected_stems(items, policy)):
        if stem == uploaded_stem:
            return i
    return None

"""
Parsing utilities for CorGen arguments.
"""

from typing import List, Optional, Sequence, Union

__all__ = []


def _parse_names(cnames: Optional[Union[str, Sequence[str]]]) -> Optional[List[str]]:
    """Split column names given as ``"a, b, c"`` or as a sequence.

    Returns:
        List of stripped names, or ``None`` when *cnames* is ``None``.
    """
    if cnames is None:
        return None
    if isinstance(cnames, str):
        names = [name.strip() for name in cnames.split(",")]
    else:
        names = [str(name).strip() for name in cnames]
    return [name for name in names if name]


def _default_names(n: int, prefix: str = "V") -> List[str]:
    """Default wide column names ``V1..Vn``."""
    return [f"{prefix}{i + 1}" for i in range(n)]

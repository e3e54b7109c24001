"""
Size fallback sequencing.

The adaptive "auto" size preserves the canvas aspect ratio but is not accepted
by every model/account combination, so it is followed by one fixed-size
fallback. A fixed preference is tried on its own.
"""

from dataclasses import dataclass
from typing import Union

from canvas_refine.models.enums import ImageSize


@dataclass(frozen=True)
class RequestCandidate:
    """One size variant of the remote request, in fallback order."""

    size: ImageSize
    position: int

    @property
    def is_fallback(self) -> bool:
        return self.position > 0


def build_candidates(
    preference: Union[ImageSize, str],
    fallback: Union[ImageSize, str] = ImageSize.SQUARE,
) -> tuple[RequestCandidate, ...]:
    """
    Order the sizes to try for one generation.

    Args:
        preference: Requested size token
        fallback: Fixed size tried after "auto"

    Returns:
        (auto, fallback) when the preference is adaptive, otherwise (preference,)

    Raises:
        ValueError: Unknown size token
    """
    preferred = ImageSize(preference)
    if not preferred.is_adaptive:
        return (RequestCandidate(size=preferred, position=0),)

    fallback_size = ImageSize(fallback)
    if fallback_size.is_adaptive:
        raise ValueError("fallback size must be a fixed dimension, not 'auto'")
    return (
        RequestCandidate(size=preferred, position=0),
        RequestCandidate(size=fallback_size, position=1),
    )

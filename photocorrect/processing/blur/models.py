"""
Data models for rectangular blur regions.
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, Iterator, List, Optional
import uuid
import logging

from ..geometry.models import Rect
from ...config import get_config_value

logger = logging.getLogger(__name__)

MIN_BLUR_AMOUNT = 10
MAX_BLUR_AMOUNT = 50
DEFAULT_BLUR_AMOUNT = 20


@dataclass(frozen=True)
class BlurRegion:
    """A rectangle of the image rendered with a Gaussian blur."""
    id: str
    rect: Rect
    blur_amount: float = DEFAULT_BLUR_AMOUNT  # Blur radius in pixels

    def __post_init__(self):
        """Validate blur strength."""
        if not MIN_BLUR_AMOUNT <= self.blur_amount <= MAX_BLUR_AMOUNT:
            raise ValueError(
                f"Blur amount {self.blur_amount} out of range "
                f"[{MIN_BLUR_AMOUNT}, {MAX_BLUR_AMOUNT}]"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'rect': self.rect.to_dict(),
            'blur_amount': self.blur_amount,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BlurRegion':
        """Create from dictionary (JSON deserialization)."""
        return cls(
            id=data['id'],
            rect=Rect.from_dict(data['rect']),
            blur_amount=data.get('blur_amount', DEFAULT_BLUR_AMOUNT),
        )


class BlurRegionSet:
    """
    Ordered collection of blur regions.

    Regions iterate in creation order, which is also the compositing order:
    where regions overlap, the one added last is painted last.
    """

    def __init__(self, regions: Optional[Iterable[BlurRegion]] = None,
                 default_amount: float = DEFAULT_BLUR_AMOUNT):
        self.default_amount = default_amount
        self._regions: Dict[str, BlurRegion] = {}
        for region in regions or ():
            self._regions[region.id] = region

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]]) -> 'BlurRegionSet':
        return cls(default_amount=get_config_value(config, 'blur.default_amount',
                                                   DEFAULT_BLUR_AMOUNT))

    def __iter__(self) -> Iterator[BlurRegion]:
        return iter(list(self._regions.values()))

    def __len__(self) -> int:
        return len(self._regions)

    def __contains__(self, region_id: str) -> bool:
        return region_id in self._regions

    def get(self, region_id: str) -> BlurRegion:
        return self._regions[region_id]

    def rects(self) -> Dict[str, Rect]:
        """Region rectangles by id, in creation order."""
        return {region_id: region.rect for region_id, region in self._regions.items()}

    def add(self, rect: Rect, blur_amount: Optional[float] = None,
            region_id: Optional[str] = None) -> BlurRegion:
        """Create a region and append it to the compositing order."""
        region = BlurRegion(
            id=region_id or uuid.uuid4().hex,
            rect=rect,
            blur_amount=self.default_amount if blur_amount is None else blur_amount,
        )
        if region.id in self._regions:
            raise KeyError(f"Blur region '{region.id}' already exists")
        self._regions[region.id] = region
        logger.debug(f"Added blur region {region.id} at {rect.to_tuple()}")
        return region

    def add_many(self, rects: Iterable[Rect],
                 blur_amount: Optional[float] = None) -> List[BlurRegion]:
        """Add one region per rectangle, e.g. for every detected face."""
        return [self.add(rect, blur_amount) for rect in rects]

    def update(self, region_id: str, rect: Optional[Rect] = None,
               blur_amount: Optional[float] = None) -> BlurRegion:
        """Replace a region's rectangle and/or blur amount, keeping its position."""
        current = self._regions[region_id]
        changes = {}
        if rect is not None:
            changes['rect'] = rect
        if blur_amount is not None:
            changes['blur_amount'] = blur_amount
        updated = replace(current, **changes)
        self._regions[region_id] = updated
        return updated

    def remove(self, region_id: str) -> BlurRegion:
        region = self._regions.pop(region_id)
        logger.debug(f"Removed blur region {region_id}")
        return region

    def clear(self):
        self._regions.clear()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'default_amount': self.default_amount,
            'regions': [region.to_dict() for region in self._regions.values()],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BlurRegionSet':
        return cls(
            regions=[BlurRegion.from_dict(r) for r in data.get('regions', [])],
            default_amount=data.get('default_amount', DEFAULT_BLUR_AMOUNT),
        )

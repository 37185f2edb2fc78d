"""Selection token set chosen by the user."""
import json
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable

from .exceptions import SelectionDecodeError


def _tokens(values: Iterable[str]) -> FrozenSet[str]:
    if isinstance(values, str):
        values = [values]
    return frozenset(str(v).strip() for v in values if str(v).strip())


@dataclass(frozen=True)
class Selection:
    """Opaque tokens for apps, categories and web domains.

    The lifecycle only cares whether the set is empty and how many tokens
    each kind holds; the restriction engine interprets the tokens.
    """
    applications: FrozenSet[str] = field(default_factory=frozenset)
    categories: FrozenSet[str] = field(default_factory=frozenset)
    web_domains: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def of(cls, applications=(), categories=(), web_domains=()) -> "Selection":
        return cls(
            applications=_tokens(applications),
            categories=_tokens(categories),
            web_domains=_tokens(web_domains),
        )

    @property
    def is_empty(self) -> bool:
        return not (self.applications or self.categories or self.web_domains)

    def __len__(self):
        return len(self.applications) + len(self.categories) + len(self.web_domains)

    def to_dict(self) -> dict:
        return {
            "applications": sorted(self.applications),
            "categories": sorted(self.categories),
            "web_domains": sorted(self.web_domains),
        }

    def encode(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def decode(cls, blob) -> "Selection":
        """Decode a stored blob (JSON text or an already-parsed dict)."""
        try:
            data = json.loads(blob) if isinstance(blob, (str, bytes)) else blob
            if not isinstance(data, dict):
                raise TypeError(f"expected an object, got {type(data).__name__}")
            return cls.of(
                applications=data.get("applications") or [],
                categories=data.get("categories") or [],
                web_domains=data.get("web_domains") or [],
            )
        except (TypeError, ValueError, AttributeError) as e:
            raise SelectionDecodeError(f"Undecodable selection: {e}") from e

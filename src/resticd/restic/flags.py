from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Self


def parse_tags(tags: str) -> tuple[str, ...]:
    """
    Split comma separated `tags`, dropping surrounding whitespace and empty entries
    """
    stripped = (tag.strip() for tag in tags.split(","))
    return tuple(filter(None, stripped))


@dataclass(frozen=True)
class TagFlag:
    """
    Represents repeated `--tag` flags for the restic, one per tag in order
    """

    tags: tuple[str, ...] = ()

    def __iter__(self) -> Iterator[str]:
        for tag in self.tags:
            yield "--tag"
            yield tag

    def __bool__(self) -> bool:
        return bool(self.tags)

    @classmethod
    def of(cls, tags: Iterable[str]) -> Self:
        return cls(tuple(tags))

    @classmethod
    def parse(cls, tags: str) -> Self:
        return cls(parse_tags(tags))

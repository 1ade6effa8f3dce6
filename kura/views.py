from __future__ import annotations

__all__: typing.Sequence[str] = ["CacheView"]

import typing

ValueT = typing.TypeVar("ValueT")


class CacheView(typing.Generic[ValueT]):
    """A lazy, restartable view over entries derived from the cache's current state.

    Every iteration recomputes the entries from scratch so a view never
    goes stale, but nothing is cached between iterations either.

    Parameters
    ----------
    factory : typing.Callable[[], typing.Iterator[ValueT]]
        Callback which produces a fresh iterator over the entries.
    """

    __slots__: typing.Sequence[str] = ("_factory",)

    def __init__(self, factory: typing.Callable[[], typing.Iterator[ValueT]], /) -> None:
        self._factory = factory

    def __iter__(self) -> typing.Iterator[ValueT]:
        return self._factory()

    def __contains__(self, value: typing.Any) -> bool:
        return any(entry == value for entry in self._factory())

    def __bool__(self) -> bool:
        return next(self._factory(), _EMPTY) is not _EMPTY

    def __repr__(self) -> str:
        return f"CacheView({list(self._factory())!r})"

    def len(self) -> int:
        """Get the count of entries this view currently covers.

        .. note::
            This walks the entries and may return different values as entries
            are added to and removed from the cache.
        """
        return sum(1 for _ in self._factory())

    def to_list(self) -> typing.List[ValueT]:
        """Collect the entries this view currently covers into a list."""
        return list(self._factory())


_EMPTY: typing.Final[typing.Any] = object()

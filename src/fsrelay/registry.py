"""Registry of watch roots resolved against a base directory."""

import os
from pathlib import Path
from typing import Iterable, Iterator, List, Union

from .exceptions import WatcherAlreadyRunningError


PathLike = Union[str, Path]


class PathRegistry:
    """
    Ordered list of watch roots.

    Paths are joined onto the base directory as given: no existence check,
    no canonicalization and no deduplication. Registering the same root
    twice produces two entries in the subscription request.
    """

    def __init__(self, base: PathLike):
        """
        Initialize the registry.

        Args:
            base: Directory relative roots are resolved against
        """
        self.base = str(base)
        self._paths: List[str] = []
        self._frozen = False

    def resolve(self, path: PathLike) -> str:
        """Join a path onto the base directory. Absolute paths replace it."""
        return os.path.join(self.base, str(path))

    def add_path(self, path: PathLike) -> str:
        """
        Add a single watch root.

        Args:
            path: Root path, relative to the base directory or absolute

        Returns:
            The resolved root

        Raises:
            WatcherAlreadyRunningError: If the registry has been frozen
        """
        if self._frozen:
            raise WatcherAlreadyRunningError(
                "Cannot add watch roots while the watcher is running"
            )

        resolved = self.resolve(path)
        self._paths.append(resolved)
        return resolved

    def add_paths(self, paths: Union[PathLike, Iterable[PathLike]]) -> List[str]:
        """
        Add several watch roots in order.

        A single str or Path is accepted as well.

        Returns:
            The resolved roots, in the order given
        """
        if isinstance(paths, (str, Path)):
            return [self.add_path(paths)]
        return [self.add_path(p) for p in paths]

    def freeze(self) -> None:
        """Make the registry read-only."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def paths(self) -> List[str]:
        """A copy of the registered roots."""
        return list(self._paths)

    def __len__(self) -> int:
        return len(self._paths)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._paths))

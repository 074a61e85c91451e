"""
Stores for custom functions used in speech rule expressions.

Some queries cannot be written as XPath (for instance when the tree
produced by a renderer has to be inspected in a non-standard way). Such
queries are registered as named Python functions; an evaluator consults
the store before falling back to XPath. Function names must carry the
prefix of their store so they cannot be confused with XPath expressions.
"""

from typing import Any, Callable, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

# Custom query: node -> list of nodes
CustomQuery = Callable[[Any], List[Any]]


class FunctionStore:
    """
    Named function store with a mandatory name prefix.

    Example:
        queries = CustomQueries()

        @queries.function("CQFfirstChild")
        def first_child(node):
            return list(node)[:1]
    """

    def __init__(self, prefix: str):
        self.prefix = prefix
        self._functions: Dict[str, Callable[..., Any]] = {}

    def _check_name(self, name: str) -> bool:
        if not name.startswith(self.prefix):
            logger.warning(
                "Invalid function name %r: expected prefix %r",
                name,
                self.prefix,
            )
            return False
        return True

    def add(self, name: str, func: Callable[..., Any]) -> bool:
        """
        Add a function under the given name.

        Returns:
            True if the function was stored, False if the name is invalid
        """
        if not self._check_name(name):
            return False
        self._functions[name] = func
        return True

    def function(self, name: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator form of add()."""
        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self.add(name, func)
            return func
        return decorator

    def lookup(self, name: str) -> Optional[Callable[..., Any]]:
        """Function stored under name, if any."""
        return self._functions.get(name)

    def has(self, name: str) -> bool:
        return name in self._functions

    def list_all(self) -> List[str]:
        return list(self._functions.keys())

    def __contains__(self, name: str) -> bool:
        return name in self._functions

    def __len__(self) -> int:
        return len(self._functions)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(prefix={self.prefix!r}, "
            f"functions={len(self._functions)})"
        )


class CustomQueries(FunctionStore):
    """Custom node selectors, usable as queries and as constraints."""

    PREFIX = "CQF"

    def __init__(self):
        super().__init__(self.PREFIX)

"""Registry for releasing scenario-owned resources in a fixed order."""

import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


class ResourceRegistry:
    """Manages resource release with deterministic ordering.

    Resources are released in reverse registration order. Release continues
    even if individual disposals fail, logging warnings for diagnostics, so
    one broken handle never leaks the others.

    Attributes
    ----------
    resources : list[dict]
        Registered resources in registration order
    """

    def __init__(self) -> None:
        self.resources: list[dict[str, Any]] = []

    def register(
        self,
        kind: str,
        handle: Any,
        dispose_fn: Callable[[Any], None],
        label: str = "",
    ) -> None:
        """Register a resource for release.

        Parameters
        ----------
        kind : str
            Type of resource (e.g., "browser", "rest")
        handle : Any
            Resource handle to pass to dispose_fn
        dispose_fn : Callable
            Function to call during release: dispose_fn(handle)
        label : str, optional
            Descriptive label for diagnostics
        """
        self.resources.append(
            {"kind": kind, "handle": handle, "dispose_fn": dispose_fn, "label": label}
        )
        logger.debug(f"Registered {kind}: {label}")

    def release_all(self) -> list[str]:
        """Release all registered resources in reverse registration order.

        Returns
        -------
        list[str]
            Labels of resources whose disposal raised
        """
        failed: list[str] = []

        while self.resources:
            entry = self.resources.pop()
            try:
                entry["dispose_fn"](entry["handle"])
                logger.debug(f"Released {entry['kind']}: {entry['label']}")
            except Exception as e:
                failed.append(entry["label"] or entry["kind"])
                logger.warning(
                    f"Release failed for {entry['kind']} '{entry['label']}': {e}"
                )

        return failed

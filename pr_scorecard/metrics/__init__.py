"""
Metric plugin registry for PR Scorecard.

Built-in calculators each expose a ``METRIC`` descriptor. Third-party packages
can contribute more through the ``pr_scorecard.metrics`` entry point group,
pointing either at a MetricPlugin or at a factory returning one. The startup
routine folds all descriptors into a MetricRegistry that is then passed to
its consumers.
"""

from importlib import import_module
from importlib.metadata import entry_points
from typing import Any

from rich.console import Console

from pr_scorecard.config import is_quiet
from pr_scorecard.errors import MetricError
from pr_scorecard.metrics.base import MetricPlugin
from pr_scorecard.models import PullRequest

console = Console(stderr=True)

ENTRY_POINT_GROUP = "pr_scorecard.metrics"

_BUILTIN_MODULES = [
    "pr_scorecard.metrics.change_request_ratio",
    "pr_scorecard.metrics.comment_density",
    "pr_scorecard.metrics.cycle_time",
    "pr_scorecard.metrics.idle_time",
    "pr_scorecard.metrics.reviewer_count",
    "pr_scorecard.metrics.revert_rate",
    "pr_scorecard.metrics.ci_pass_rate",
    "pr_scorecard.metrics.ci_metrics",
    "pr_scorecard.metrics.pickup_time",
    "pr_scorecard.metrics.size_bucket",
    "pr_scorecard.metrics.outsized_flag",
]


class MetricRegistry:
    """Append-only collection of metric plugins."""

    def __init__(self, plugins: list[MetricPlugin] | None = None):
        self._plugins: list[MetricPlugin] = []
        for plugin in plugins or []:
            self.register(plugin)

    def register(self, plugin: MetricPlugin) -> None:
        """Append a plugin.

        Raises:
            TypeError: If ``plugin`` is not a MetricPlugin.
            ValueError: If a plugin with the same slug is already registered.
        """
        if not isinstance(plugin, MetricPlugin):
            raise TypeError(f"Expected MetricPlugin, got {type(plugin)}")
        if self.get(plugin.slug) is not None:
            raise ValueError(f"Metric plugin '{plugin.slug}' is already registered")
        self._plugins.append(plugin)

    def get_all(self) -> list[MetricPlugin]:
        """Return a snapshot copy of the registered plugins."""
        return list(self._plugins)

    def get(self, slug: str) -> MetricPlugin | None:
        for plugin in self._plugins:
            if plugin.slug == slug:
                return plugin
        return None

    def slugs(self) -> list[str]:
        return [plugin.slug for plugin in self._plugins]

    def evaluate(self, pr: PullRequest) -> dict[str, Any]:
        """
        Run every plugin on one pull request.

        Plugins raising MetricError are omitted from the result (metric
        absent); other exceptions propagate.
        """
        values: dict[str, Any] = {}
        for plugin in self._plugins:
            try:
                values[plugin.slug] = plugin.calculate(pr)
            except MetricError:
                continue
        return values

    def __len__(self) -> int:
        return len(self._plugins)

    def __contains__(self, slug: object) -> bool:
        return any(plugin.slug == slug for plugin in self._plugins)


def _load_builtin_metric_plugins() -> list[MetricPlugin]:
    plugins: list[MetricPlugin] = []
    for module_path in _BUILTIN_MODULES:
        module = import_module(module_path)
        plugin = getattr(module, "METRIC", None)
        if plugin is not None:
            plugins.append(plugin)
    return plugins


def _load_entrypoint_metric_plugins() -> list[MetricPlugin]:
    plugins: list[MetricPlugin] = []
    for entry_point in entry_points(group=ENTRY_POINT_GROUP):
        try:
            loaded = entry_point.load()
        except Exception as e:
            if not is_quiet():
                console.print(
                    f"[yellow]Warning: could not load metric plugin "
                    f"{getattr(entry_point, 'name', entry_point)}: {e}[/yellow]"
                )
            continue
        if isinstance(loaded, MetricPlugin):
            plugins.append(loaded)
            continue
        if callable(loaded):
            try:
                produced = loaded()
            except Exception as e:
                if not is_quiet():
                    console.print(
                        f"[yellow]Warning: metric plugin factory "
                        f"{getattr(entry_point, 'name', entry_point)} failed: {e}[/yellow]"
                    )
                continue
            if isinstance(produced, MetricPlugin):
                plugins.append(produced)
    return plugins


def load_metric_plugins() -> list[MetricPlugin]:
    """
    Load built-in and entry point metric plugins.

    Entry point plugins never override a built-in slug.
    """
    plugins = _load_builtin_metric_plugins()
    seen = {plugin.slug for plugin in plugins}
    for plugin in _load_entrypoint_metric_plugins():
        if plugin.slug in seen:
            continue
        seen.add(plugin.slug)
        plugins.append(plugin)
    return plugins


def create_registry() -> MetricRegistry:
    """Build the registry used for a process. Call once at startup."""
    return MetricRegistry(load_metric_plugins())


__all__ = [
    "MetricPlugin",
    "MetricRegistry",
    "create_registry",
    "load_metric_plugins",
]

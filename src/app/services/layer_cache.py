from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Sequence

from src.app.ports.output import INotifier, IRoutingGateway
from src.app.services.observable import Listener, Observable
from src.app.services.request_table import InFlightTable
from src.domain.exceptions import GatewayError
from src.domain.models import CategoryLayer, LayerSnapshot, Tone
from src.domain.models.category import (
    CATEGORY_TAG,
    normalise_category,
    sort_by_importance,
)

logger = logging.getLogger(__name__)

_REFRESH_KEY = "refresh"


def _dedupe(categories: Iterable[object]) -> list[str]:
    return [c for c in dict.fromkeys(normalise_category(x) for x in categories) if c]


def _tag_features(
    features: Iterable[Mapping[str, Any]], category: str
) -> tuple[Mapping[str, Any], ...]:
    out: list[Mapping[str, Any]] = []
    for f in features:
        if not isinstance(f, Mapping):
            continue
        props = f.get("properties")
        props = dict(props) if isinstance(props, Mapping) else {}
        props[CATEGORY_TAG] = category
        out.append({**f, "properties": props})
    return tuple(out)


@dataclass(slots=True)
class LayerCache:
    """Lazy per-category geometry for the road-type overlays.

    A category is fetched at most once: later requests reuse the cached
    layer, and concurrent requests while a fetch is running share it. The
    visible collection is always rebuilt from the cache alone.
    """

    gateway: IRoutingGateway
    notifier: INotifier

    _cache: dict[str, CategoryLayer] = field(default_factory=dict, init=False, repr=False)
    _inflight: InFlightTable[str, CategoryLayer] = field(
        default_factory=InFlightTable, init=False, repr=False
    )
    _pending: set[str] = field(default_factory=set, init=False)
    _selected: list[str] = field(default_factory=list, init=False)
    _valid: tuple[str, ...] = field(default=(), init=False)
    _allowed: tuple[str, ...] = field(default=(), init=False)
    _available: tuple[str, ...] | None = field(default=None, init=False)
    _visible: tuple[Mapping[str, Any], ...] | None = field(default=None, init=False)
    _events: Observable[LayerSnapshot] = field(
        default_factory=Observable, init=False, repr=False
    )

    def snapshot(self) -> LayerSnapshot:
        return LayerSnapshot(
            valid=self._valid,
            selected=tuple(self._selected),
            pending=tuple(sorted(self._pending)),
            visible=self._visible,
        )

    def subscribe(self, listener: Listener[LayerSnapshot]) -> Callable[[], None]:
        return self._events.subscribe(listener)

    def _publish(self) -> None:
        self._events.publish(self.snapshot())

    async def ensure_loaded(self, category: str) -> CategoryLayer | None:
        key = normalise_category(category)
        if not key:
            return None

        layer = self._cache.get(key)
        if layer is not None:
            logger.debug("Category cache hit", extra={"category": key})
            return layer

        task = self._inflight.get(key)
        if task is None:
            task = self._inflight.start(key, lambda: self._fetch(key))
        else:
            logger.debug("Category fetch shared", extra={"category": key})

        # One caller giving up must not cancel the shared fetch.
        return await asyncio.shield(task)

    async def _fetch(self, key: str) -> CategoryLayer:
        fetched = await self.gateway.category_features(key)
        layer = CategoryLayer(category=key, features=_tag_features(fetched.features, key))
        self._cache[key] = layer
        return layer

    def rebuild_visible(
        self, selected: Sequence[str] | None = None
    ) -> tuple[Mapping[str, Any], ...] | None:
        """Recompute the combined visible features from the cache only."""

        categories = _dedupe(self._selected if selected is None else selected)
        if not categories:
            self._visible = None
        else:
            features: list[Mapping[str, Any]] = []
            for c in categories:
                layer = self._cache.get(c)
                if layer is not None:
                    features.extend(layer.features)
            self._visible = tuple(features)
        self._publish()
        return self._visible

    def _report_failures(self, failed: dict[str, GatewayError]) -> None:
        if not failed:
            return
        names = ", ".join(failed)
        if all(exc.retryable for exc in failed.values()):
            self.notifier.notify(
                Tone.WARN,
                f"Road type layer(s) still being prepared: {names}. Try again shortly.",
            )
            return
        first = next(iter(failed.values()))
        if len(failed) == 1:
            self.notifier.notify(Tone.BAD, str(first) or "Failed to load road type layer")
        else:
            self.notifier.notify(Tone.BAD, f"Failed to load road type layers: {names}")

    async def _load_tracked(self, category: str) -> CategoryLayer | None:
        try:
            return await self.ensure_loaded(category)
        finally:
            self._pending.discard(category)
            self._publish()

    async def toggle(self, category: str, checked: bool) -> None:
        key = normalise_category(category)
        if not key:
            return

        if not checked:
            self._selected = [c for c in self._selected if c != key]
            self.rebuild_visible()
            return

        if key not in self._selected:
            self._selected.append(key)
        await self.select(self._selected, restrict_to_valid=False)

    async def select(
        self, categories: Iterable[str], *, restrict_to_valid: bool = True
    ) -> None:
        """Show exactly ``categories``, loading them concurrently.

        A failing category does not block the others; it is dropped from the
        selection and all failures are reported in a single notice.
        """

        wanted = _dedupe(categories)
        if restrict_to_valid and self._valid:
            wanted = [c for c in wanted if c in self._valid]

        if not wanted:
            self.hide_all()
            return

        self._selected = wanted
        to_load = [c for c in wanted if c not in self._cache]
        self._pending.update(to_load)
        self.rebuild_visible()

        results = await asyncio.gather(
            *(self._load_tracked(c) for c in to_load), return_exceptions=True
        )

        failed: dict[str, GatewayError] = {}
        for category, result in zip(to_load, results):
            if isinstance(result, GatewayError):
                logger.warning(
                    "Category load failed", extra={"category": category, "error": str(result)}
                )
                failed[category] = result
            elif isinstance(result, BaseException):
                raise result

        if failed:
            self._selected = [c for c in self._selected if c not in failed]
        self.rebuild_visible()
        self._report_failures(failed)

    async def select_all(self) -> None:
        allowed = set(self._allowed)
        candidates = [c for c in self._valid if not allowed or c in allowed]
        await self.select(candidates)

    def hide_all(self) -> None:
        self._selected = []
        self.rebuild_visible()

    async def refresh(self, allowed: Sequence[str]) -> tuple[str, ...]:
        """Reload which categories exist and are valid for ``allowed`` road types."""

        self._allowed = tuple(_dedupe(allowed))
        self._pending.add(_REFRESH_KEY)
        self._publish()
        try:
            if self._available is None:
                try:
                    self._available = tuple(_dedupe(await self.gateway.all_categories()))
                except GatewayError:
                    logger.warning("Failed to fetch available road types")
                    self.notifier.notify(Tone.BAD, "Failed to fetch available road types")
            available = set(self._available or ())

            try:
                await self.gateway.set_valid_categories(list(self._allowed))
            except GatewayError as exc:
                logger.warning("Failed to set valid road types: %s", exc)

            valid = sort_by_importance(await self.gateway.valid_categories())
            allowed_set = set(self._allowed)
            self._valid = tuple(
                c for c in valid if c in available and c in allowed_set
            )

            cleaned = [c for c in self._selected if c in self._valid]
            if cleaned:
                self._selected = cleaned
                self.rebuild_visible()
            else:
                self.hide_all()
        except GatewayError as exc:
            self.notifier.notify(Tone.BAD, str(exc) or "Failed to load road types")
        finally:
            self._pending.discard(_REFRESH_KEY)
            self._publish()
        return self._valid

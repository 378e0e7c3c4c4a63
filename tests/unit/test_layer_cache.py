from __future__ import annotations

import asyncio

import pytest

from src.app.services.layer_cache import LayerCache
from src.domain.exceptions import CategoryNotReady, GatewayError
from src.domain.models import CategoryLayer, Tone
from src.domain.models.category import CATEGORY_TAG


def layer(category: str, n: int = 1) -> CategoryLayer:
    return CategoryLayer(
        category=category,
        features=tuple(
            {
                "type": "Feature",
                "geometry": {"type": "LineString", "coordinates": [[0, i], [1, i]]},
                "properties": {"ref": f"{category}-{i}"},
            }
            for i in range(n)
        ),
    )


@pytest.fixture
def cache(gateway, notifier) -> LayerCache:
    gateway.layers = {
        "motorway": layer("motorway", 2),
        "primary": layer("primary"),
        "residential": layer("residential"),
    }
    return LayerCache(gateway=gateway, notifier=notifier)


@pytest.mark.unit
@pytest.mark.anyio
async def test_concurrent_loads_share_one_fetch(cache, gateway) -> None:
    gateway.layer_gate = asyncio.Event()

    a = asyncio.ensure_future(cache.ensure_loaded("motorway"))
    b = asyncio.ensure_future(cache.ensure_loaded(" Motorway "))
    await asyncio.sleep(0)
    gateway.layer_gate.set()
    la, lb = await asyncio.gather(a, b)

    assert gateway.category_fetches == ["motorway"]
    assert la is lb
    assert all(f["properties"][CATEGORY_TAG] == "motorway" for f in la.features)
    assert la.features[0]["properties"]["ref"] == "motorway-0"


@pytest.mark.unit
@pytest.mark.anyio
async def test_cached_layer_is_not_refetched(cache, gateway) -> None:
    await cache.ensure_loaded("primary")
    await cache.ensure_loaded("primary")

    assert gateway.category_fetches == ["primary"]


@pytest.mark.unit
@pytest.mark.anyio
async def test_failed_fetch_can_be_retried(cache, gateway) -> None:
    gateway.layers["primary"] = GatewayError("boom")
    with pytest.raises(GatewayError):
        await cache.ensure_loaded("primary")

    gateway.layers["primary"] = layer("primary")
    assert (await cache.ensure_loaded("primary")) is not None
    assert gateway.category_fetches == ["primary", "primary"]


@pytest.mark.unit
@pytest.mark.anyio
async def test_rapid_double_toggle_fetches_once(cache, gateway) -> None:
    gateway.layer_gate = asyncio.Event()

    first = asyncio.ensure_future(cache.toggle("motorway", True))
    await asyncio.sleep(0)
    second = asyncio.ensure_future(cache.toggle("motorway", True))
    await asyncio.sleep(0)
    gateway.layer_gate.set()
    await asyncio.gather(first, second)

    assert gateway.category_fetches == ["motorway"]
    snap = cache.snapshot()
    assert snap.selected == ("motorway",)
    assert snap.visible is not None and len(snap.visible) == 2
    assert snap.pending == ()


@pytest.mark.unit
@pytest.mark.anyio
async def test_untoggle_hides_without_fetching(cache, gateway) -> None:
    await cache.toggle("motorway", True)
    await cache.toggle("primary", True)
    gateway.category_fetches.clear()

    await cache.toggle("motorway", False)

    assert gateway.category_fetches == []
    assert cache.snapshot().selected == ("primary",)
    assert len(cache.snapshot().visible or ()) == 1


@pytest.mark.unit
@pytest.mark.anyio
async def test_partial_failure_keeps_other_layers(cache, gateway, notifier) -> None:
    gateway.layers["primary"] = GatewayError("Road type primary exploded")

    await cache.select(["motorway", "primary", "residential"])

    snap = cache.snapshot()
    assert snap.selected == ("motorway", "residential")
    assert len(snap.visible or ()) == 3
    assert notifier.texts(Tone.BAD) == ["Road type primary exploded"]


@pytest.mark.unit
@pytest.mark.anyio
async def test_not_ready_layers_are_a_warning(cache, gateway, notifier) -> None:
    gateway.layers["primary"] = CategoryNotReady("wait")

    await cache.select(["primary"])

    assert notifier.texts(Tone.BAD) == []
    [warning] = notifier.texts(Tone.WARN)
    assert "primary" in warning


@pytest.mark.unit
@pytest.mark.anyio
async def test_not_ready_mixed_with_hard_failure_is_an_error(cache, gateway, notifier) -> None:
    gateway.layers["primary"] = CategoryNotReady("wait")
    gateway.layers["residential"] = GatewayError("boom")

    await cache.select(["primary", "residential", "motorway"])

    assert notifier.texts(Tone.WARN) == []
    assert notifier.texts(Tone.BAD) == ["Failed to load road type layers: primary, residential"]
    assert cache.snapshot().selected == ("motorway",)


@pytest.mark.unit
@pytest.mark.anyio
async def test_rebuild_visible_reads_cache_only(cache, gateway) -> None:
    await cache.ensure_loaded("primary")
    gateway.category_fetches.clear()

    visible = cache.rebuild_visible(["primary", "motorway"])

    assert gateway.category_fetches == []
    assert visible is not None and len(visible) == 1
    assert cache.rebuild_visible([]) is None


@pytest.mark.unit
@pytest.mark.anyio
async def test_refresh_keeps_valid_available_allowed_sorted(cache, gateway) -> None:
    gateway.all_types = ("residential", "motorway", "primary", "footway")
    gateway.valid_types = ("Residential", "primary", "footway", "motorway", "bogus")

    valid = await cache.refresh(["motorway", "primary", "residential"])

    assert valid == ("motorway", "primary", "residential")
    assert gateway.valid_sets == [["motorway", "primary", "residential"]]
    assert cache.snapshot().pending == ()


@pytest.mark.unit
@pytest.mark.anyio
async def test_refresh_drops_selection_no_longer_valid(cache, gateway) -> None:
    gateway.all_types = ("motorway", "primary")
    gateway.valid_types = ("motorway", "primary")
    await cache.refresh(["motorway", "primary"])
    await cache.select(["motorway", "primary"])

    await cache.refresh(["primary"])

    assert cache.snapshot().selected == ("primary",)


@pytest.mark.unit
@pytest.mark.anyio
async def test_select_all_and_hide_all(cache, gateway) -> None:
    gateway.all_types = ("motorway", "primary", "residential")
    gateway.valid_types = gateway.all_types
    await cache.refresh(["motorway", "residential"])

    await cache.select_all()
    assert cache.snapshot().selected == ("motorway", "residential")

    cache.hide_all()
    assert cache.snapshot().selected == ()
    assert cache.snapshot().visible is None

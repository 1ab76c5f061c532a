# tests/test_controller.py

from __future__ import annotations

import pytest

from punchlist.auth.identity import LocalIdentityProvider
from punchlist.core.controller import HOME, AppController, Page, bulk_unit_names
from punchlist.errors import SuggestionError

from .fakes import FakeNotifier, FakeSuggestionGateway


def test_bulk_unit_names_cover_four_buildings() -> None:
    planned = list(bulk_unit_names())
    assert len(planned) == 80
    assert planned[0] == ("BuildingA-Unit01", "BuildingA Address, Unit 01")
    assert planned[19][0] == "BuildingA-Unit20"
    assert planned[36][0] == "BuildingB-Unit17"
    assert planned[-1][0] == "BuildingD-Unit20"


@pytest.mark.asyncio
async def test_start_signs_in_and_shows_home(controller, repo) -> None:
    await repo.create_unit("A-1", "123 Main")

    assert await controller.start()
    assert controller.identity is not None
    assert controller.identity.is_anonymous
    assert controller.view == HOME
    assert [u.name for u in controller.units] == ["A-1"]


@pytest.mark.asyncio
async def test_start_with_unit_id_opens_detail_directly(controller, repo) -> None:
    await repo.create_unit("A-1", "123 Main")

    assert await controller.start(initial_unit_id="A-1")
    assert controller.view.page == Page.UNIT_DETAIL
    assert controller.view.unit_id == "A-1"
    assert controller.unit is not None
    assert controller.selected_trade == "Electrical"
    assert not controller.unit_loading


@pytest.mark.asyncio
async def test_failed_sign_in_is_reported_and_blocks_actions(repo, notifier, gateway) -> None:
    ctrl = AppController(
        repository=repo,
        identity_provider=LocalIdentityProvider(),
        suggestions=gateway,
        notifier=notifier,
        auth_token="   ",
    )

    assert not await ctrl.start()
    assert notifier.errors and "Authentication failed" in notifier.errors[0]

    assert not await ctrl.add_unit("A-1", "123 Main")
    assert "Store not initialized. Please wait." in notifier.errors
    assert await repo.fetch_unit("A-1") is None


@pytest.mark.asyncio
async def test_open_and_back_swap_subscriptions(controller, repo, store) -> None:
    await repo.create_unit("A-1", "123 Main")
    await controller.start()
    base = store.listener_count()

    assert controller.open_unit("A-1")
    assert store.listener_count() == base + 1

    controller.open_unit("A-1")
    assert store.listener_count() == base + 1

    controller.back()
    assert controller.view == HOME
    assert controller.unit is None
    assert controller.selected_trade is None
    assert store.listener_count() == base


@pytest.mark.asyncio
async def test_open_missing_unit_reports_not_found(controller, notifier) -> None:
    await controller.start()
    controller.open_unit("ghost")

    assert controller.view.page == Page.UNIT_DETAIL
    assert controller.unit is None
    assert 'Unit "ghost" not found.' in notifier.errors


@pytest.mark.asyncio
async def test_add_unit_rejects_blank_fields(controller, repo, notifier) -> None:
    await controller.start()

    assert not await controller.add_unit("  ", "123 Main")
    assert not await controller.add_unit("A-1", "")
    assert notifier.errors == ["Unit name and address cannot be empty."] * 2
    assert controller.units == []


@pytest.mark.asyncio
async def test_add_unit_shows_up_through_the_subscription(controller, notifier) -> None:
    await controller.start()

    assert await controller.add_unit("A-1", "123 Main")
    assert [u.name for u in controller.units] == ["A-1"]
    assert 'Unit "A-1" added successfully!' in notifier.infos

    assert not await controller.add_unit("A-1", "123 Main")
    assert any("already exists" in e for e in notifier.errors)


@pytest.mark.asyncio
async def test_generate_buildings_creates_eighty_units(controller, store) -> None:
    await controller.start()

    assert await controller.generate_buildings() == 80
    names = {u.name for u in controller.units}
    assert len(names) == 80
    for prefix in ("BuildingA", "BuildingB", "BuildingC", "BuildingD"):
        for n in range(1, 21):
            assert f"{prefix}-Unit{n:02d}" in names
    assert store.set_calls == 80


@pytest.mark.asyncio
async def test_generate_buildings_stops_at_first_failure(controller, store, notifier) -> None:
    await controller.start()
    store.fail_on_set = {37}

    assert await controller.generate_buildings() == 36
    assert len(controller.units) == 36
    assert store.set_calls == 37
    assert any("BuildingB-Unit17" in e and "Stopping batch generation" in e for e in notifier.errors)
    assert "BuildingB-Unit18" not in {u.name for u in controller.units}


@pytest.mark.asyncio
async def test_toggle_task_round_trips_through_store(controller, repo) -> None:
    await repo.create_unit("A-1", "123 Main")
    await controller.start(initial_unit_id="A-1")

    assert await controller.toggle_task(0)
    assert controller.current_tasks()[0].completed is True

    assert await controller.toggle_task(0)
    assert controller.current_tasks()[0].completed is False


@pytest.mark.asyncio
async def test_toggle_with_stale_index_is_reported(controller, repo, notifier) -> None:
    await repo.create_unit("A-1", "123 Main")
    await controller.start(initial_unit_id="A-1")

    assert not await controller.toggle_task(5)
    assert notifier.errors == ["No task #6 in Electrical."]


@pytest.mark.asyncio
async def test_toggle_after_remote_change_is_reported(controller, repo, store, notifier) -> None:
    await repo.create_unit("A-1", "123 Main")
    await controller.start(initial_unit_id="A-1")

    # Another writer dropped the trade; its snapshot push has not arrived yet.
    store._data[repo.collection]["A-1"]["trades"] = {}
    assert len(controller.current_tasks()) == 2

    assert not await controller.toggle_task(0)
    assert notifier.errors == ['Error updating task: Trade "Electrical" no longer exists on unit "A-1".']


@pytest.mark.asyncio
async def test_add_task_needs_selected_trade(controller, repo, notifier) -> None:
    await repo.create_unit("A-1", "123 Main")
    await controller.start(initial_unit_id="A-1")

    assert await controller.add_task("Install panel")
    assert controller.current_tasks()[-1].task == "Install panel"

    controller.selected_trade = None
    assert not await controller.add_task("Another")
    assert "Please select a trade first." in notifier.errors


@pytest.mark.asyncio
async def test_suggest_tasks_appends_only_new_ones(controller, repo, gateway, notifier) -> None:
    await repo.create_unit("A-1", "123 Main")
    await controller.start(initial_unit_id="A-1")
    gateway.result = ["Rough-in wiring", "Install conduit"]

    added = await controller.suggest_tasks()

    assert [t.task for t in added] == ["Install conduit"]
    assert gateway.calls == ["Electrical"]
    assert [t.task for t in controller.current_tasks()] == [
        "Rough-in wiring",
        "Fixture installation",
        "Install conduit",
    ]
    assert "Suggested tasks added for Electrical!" in notifier.infos
    assert not controller.is_generating_tasks


@pytest.mark.asyncio
async def test_suggest_tasks_noop_is_reported(controller, repo, gateway, notifier) -> None:
    await repo.create_unit("A-1", "123 Main")
    await controller.start(initial_unit_id="A-1")
    gateway.result = ["Fixture installation"]

    assert await controller.suggest_tasks() == []
    assert "No new unique tasks were suggested." in notifier.infos
    assert len(controller.current_tasks()) == 2


@pytest.mark.asyncio
async def test_suggest_failure_leaves_tasks_unchanged(repo, notifier) -> None:
    gateway = FakeSuggestionGateway(SuggestionError("Suggestion service returned HTTP 503."))
    ctrl = AppController(
        repository=repo,
        identity_provider=LocalIdentityProvider(),
        suggestions=gateway,
        notifier=notifier,
    )
    await repo.create_unit("A-1", "123 Main")
    await ctrl.start(initial_unit_id="A-1")

    assert await ctrl.suggest_tasks() == []
    assert "Suggestion service returned HTTP 503." in notifier.errors
    assert len(ctrl.current_tasks()) == 2
    assert not ctrl.is_generating_tasks


@pytest.mark.asyncio
async def test_listeners_see_pushes_from_other_writers(controller, repo) -> None:
    await repo.create_unit("A-1", "123 Main")
    await controller.start(initial_unit_id="A-1")
    renders: list[int] = []
    remove = controller.add_listener(lambda c: renders.append(len(c.current_tasks())))

    await repo.add_task("A-1", "Electrical", "Written elsewhere")
    assert renders[-1] == 3

    remove()
    await repo.add_task("A-1", "Electrical", "Again")
    assert renders[-1] == 3


@pytest.mark.asyncio
async def test_close_cancels_every_subscription(repo, store, gateway) -> None:
    await repo.create_unit("A-1", "123 Main")
    async with AppController(
        repository=repo,
        identity_provider=LocalIdentityProvider(),
        suggestions=gateway,
        notifier=FakeNotifier(),
    ) as ctrl:
        await ctrl.start(initial_unit_id="A-1")
        assert store.listener_count() == 2

    assert store.listener_count() == 0
    assert not ctrl.ready


@pytest.mark.asyncio
async def test_second_start_does_not_leak_subscriptions(controller, store) -> None:
    assert await controller.start()
    assert await controller.start()
    assert store.listener_count() == 1

    controller.close()
    assert store.listener_count() == 0

    assert not await controller.start()
    assert store.listener_count() == 0


@pytest.mark.asyncio
async def test_share_link_carries_unit_id(controller, notifier) -> None:
    await controller.start()
    link = controller.share_link("BuildingA-Unit01")
    assert link == "https://punch.example.com/app?unitId=BuildingA-Unit01"
    assert any(link in n for n in notifier.infos)

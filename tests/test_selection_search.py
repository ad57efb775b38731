import asyncio

from conftest import MASTER_A, MASTER_B

from texas_parcel_viewer.api.schemas import ParcelDetail
from texas_parcel_viewer.errors import Found, TransportError


def test_empty_search_asks_for_id(make_controller, fake_client):
    async def scenario():
        controller = make_controller()
        await controller.select_from_search("   ")
        return controller

    controller = asyncio.run(scenario())
    assert controller.state.status == "Enter parcel id"
    assert fake_client.parcel_calls == []


def test_server_match_wins_and_highlights_rendered_feature(make_controller, fake_client, recording_renderer):
    fake_client.parcels["PROP-B"] = Found(
        record={"master_id": MASTER_B, "prop_id": "PROP-B", "address": "9800 FM 1826"}
    )

    async def scenario():
        controller = make_controller()
        await controller.select_from_search(" PROP-B ")
        return controller

    controller = asyncio.run(scenario())
    assert fake_client.parcel_calls == ["PROP-B"]
    assert controller.state.status == "Parcel found (server)"
    assert controller.state.detail.address == "9800 FM 1826"
    assert controller.state.panel_open is True
    assert controller.url_state.get_id() == MASTER_B
    assert [sel.identifier for sel in recording_renderer.active] == [MASTER_B]
    assert controller.canvas.fitted[-1] == ((2.0, 0.0), (3.0, 1.0))


def test_rendered_fallback_matches_case_insensitively(make_controller, fake_client):
    async def scenario():
        controller = make_controller()
        await controller.select_from_search("p-a")
        return controller

    controller = asyncio.run(scenario())
    assert controller.state.status == "Parcel found (rendered)"
    assert controller.state.detail.prop_id == "PROP-A"
    assert controller.state.detail.parcel_id == "P-A"
    assert controller.url_state.get_id() == MASTER_A


def test_unmatched_search_reverts_to_ready(make_controller):
    async def scenario():
        controller = make_controller(delay=0.01)
        kept = ParcelDetail(master_id="keep-me")
        controller.state.detail = kept
        await controller.select_from_search("nothing-here")
        during = controller.state.status
        await asyncio.sleep(0.05)
        return controller, kept, during

    controller, kept, during = asyncio.run(scenario())
    assert during == "Parcel not found"
    assert controller.state.status == "Ready"
    assert controller.state.detail is kept
    assert controller.notes == []


def test_status_revert_skipped_when_status_changed(make_controller):
    async def scenario():
        controller = make_controller(delay=0.01)
        await controller.select_from_search("nothing-here")
        controller.set_status("Selection cleared")
        await asyncio.sleep(0.05)
        return controller

    controller = asyncio.run(scenario())
    assert controller.state.status == "Selection cleared"


def test_search_transport_error_notifies_only_when_nothing_matches(make_controller, fake_client):
    fake_client.parcels["nothing-here"] = TransportError(status=500, message="HTTP 500")
    fake_client.parcels["P-B"] = TransportError(status=500, message="HTTP 500")

    async def scenario():
        controller = make_controller(delay=0.01)
        await controller.select_from_search("P-B")
        after_rendered = list(controller.notes)
        await controller.select_from_search("nothing-here")
        return controller, after_rendered

    controller, after_rendered = asyncio.run(scenario())
    assert after_rendered == []
    assert controller.notes == ["Failed to fetch parcel."]


def test_click_during_search_wins(make_controller, fake_client):
    fake_client.parcels["PROP-B"] = Found(record={"master_id": MASTER_B, "prop_id": "PROP-B"})
    fake_client.details[MASTER_A] = Found(record={"master_id": MASTER_A, "prop_id": "PROP-A"})

    async def scenario():
        controller = make_controller()
        gate = fake_client.hold("PROP-B")
        search = asyncio.create_task(controller.select_from_search("PROP-B"))
        await asyncio.sleep(0)
        await controller.select_from_point((0.5, 0.5))
        gate.set_result(None)
        await search
        return controller

    controller = asyncio.run(scenario())
    assert controller.state.detail.prop_id == "PROP-A"
    assert controller.state.status == "Parcel details loaded"


def test_unmatched_search_keeps_in_flight_click(make_controller, fake_client, recording_renderer):
    fake_client.details[MASTER_A] = Found(record={"master_id": MASTER_A, "prop_id": "PROP-A"})

    async def scenario():
        controller = make_controller(delay=0.01)
        controller.state.detail = ParcelDetail(master_id="previous")
        gate = fake_client.hold(MASTER_A)
        click = asyncio.create_task(controller.select_from_point((0.5, 0.5)))
        await asyncio.sleep(0)
        await controller.select_from_search("nothing-here")
        gate.set_result(None)
        await click
        return controller

    controller = asyncio.run(scenario())
    assert controller.state.detail.master_id == MASTER_A
    assert controller.url_state.get_id() == MASTER_A
    assert [sel.identifier for sel in recording_renderer.active] == [MASTER_A]
    assert controller.state.fetching is False


def test_resolved_search_supersedes_in_flight_click(make_controller, fake_client):
    fake_client.details[MASTER_A] = Found(record={"master_id": MASTER_A, "prop_id": "PROP-A"})
    fake_client.parcels["PROP-B"] = Found(record={"master_id": MASTER_B, "prop_id": "PROP-B"})

    async def scenario():
        controller = make_controller()
        gate = fake_client.hold(MASTER_A)
        click = asyncio.create_task(controller.select_from_point((0.5, 0.5)))
        await asyncio.sleep(0)
        await controller.select_from_search("PROP-B")
        gate.set_result(None)
        await click
        return controller

    controller = asyncio.run(scenario())
    assert controller.state.detail.master_id == MASTER_B
    assert controller.url_state.get_id() == MASTER_B

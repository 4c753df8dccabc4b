import pytest

from fake_driver import FakeDriver, FakePage, el, fast_config
from ssr_harness.errors import (
    AmbiguousElementError,
    ElementNotFoundError,
    HistoryError,
    NavigationError,
)
from ssr_harness.harness.navigator import Navigator
from ssr_harness.harness.session import Session
from ssr_harness.models import ScenarioState


def _index(driver: FakeDriver):
    return el(
        "body",
        "",
        el("h1", "Index"),
        el("a", "React Router", href="/react_router"),
        el("a", "React Router First Page", href="/react_router/first_page"),
        el("a", "Client side", href="/client_side_hello_world"),
        el("a", "Client side", href="/client_side_hello_world_shared_store"),
        el("button", "refresh", id="refresh"),
        el("input", "", type="submit", value="Save"),
    )


ROUTES = {
    "/": FakePage(_index),
    "/react_router": FakePage(lambda driver: el("body", "", el("h2", "React Router"))),
    "/react_router/first_page": FakePage(lambda driver: el("body", "", el("h2", "First"))),
    "/client_side_hello_world": FakePage(lambda driver: el("body", "Hello")),
    "/client_side_hello_world_shared_store": FakePage(lambda driver: el("body", "Shared")),
    "/boom": FakePage(lambda driver: el("body", "Internal Server Error"), status=500),
}


@pytest.fixture()
def driver() -> FakeDriver:
    return FakeDriver(dict(ROUTES))


def _navigator(driver: FakeDriver, **overrides) -> tuple[Navigator, Session]:
    session = Session(driver, fast_config(**overrides))
    session.start()
    return Navigator(session), session


def test_visit_updates_url_history_and_state(driver):
    navigator, session = _navigator(driver)

    navigator.visit("/react_router")

    assert session.current_url == "http://app.test/react_router"
    assert session.current_path == "/react_router"
    assert session.history == ["http://app.test/react_router"]
    assert session.state == ScenarioState.NAVIGATED


def test_visit_resets_cached_snapshot(driver):
    navigator, session = _navigator(driver)
    navigator.visit("/")
    session.mark_settled()
    assert "Index" in session.html()

    navigator.visit("/client_side_hello_world")

    assert "Index" not in session.html()


def test_visit_fails_when_server_unreachable():
    navigator, _ = _navigator(FakeDriver(reachable=False))

    with pytest.raises(NavigationError) as excinfo:
        navigator.visit("/")

    assert "ERR_CONNECTION_REFUSED" in str(excinfo.value)
    assert excinfo.value.url == "http://app.test/"


def test_visit_fails_on_server_error(driver):
    navigator, _ = _navigator(driver)

    with pytest.raises(NavigationError) as excinfo:
        navigator.visit("/boom")

    assert excinfo.value.status == 500


def test_server_errors_can_be_tolerated(driver):
    navigator, session = _navigator(driver, navigation={"fail_on_server_error": False})

    navigator.visit("/boom")

    assert session.current_path == "/boom"


def test_visit_fails_on_listed_status(driver):
    navigator, _ = _navigator(driver, navigation={"fail_on_status": [404]})

    navigator.visit("/")
    with pytest.raises(NavigationError) as excinfo:
        navigator.visit("/missing")

    assert excinfo.value.status == 404


def test_go_back_without_history_fails(driver):
    navigator, _ = _navigator(driver)
    navigator.visit("/")

    with pytest.raises(HistoryError):
        navigator.go_back()


def test_go_back_and_forward(driver):
    navigator, session = _navigator(driver)
    navigator.visit("/")
    navigator.visit("/client_side_hello_world")

    navigator.go_back()
    assert session.current_path == "/"
    assert session.state == ScenarioState.NAVIGATED
    assert driver.visits[-1] == "/"

    navigator.go_forward()
    assert session.current_path == "/client_side_hello_world"

    with pytest.raises(HistoryError):
        navigator.go_forward()


def test_click_link_prefers_exact_label(driver):
    navigator, session = _navigator(driver)
    navigator.visit("/")

    navigator.click_link("React Router")

    assert session.current_path == "/react_router"
    assert session.state == ScenarioState.INTERACTING
    assert session.history[-1] == "http://app.test/react_router"


def test_click_link_falls_back_to_partial_label(driver):
    navigator, session = _navigator(driver)
    navigator.visit("/")

    navigator.click_link("First Page")

    assert session.current_path == "/react_router/first_page"


def test_click_link_ambiguous_label(driver):
    navigator, _ = _navigator(driver)
    navigator.visit("/")

    with pytest.raises(AmbiguousElementError) as excinfo:
        navigator.click_link("Client side")

    assert excinfo.value.count == 2


def test_click_link_index_disambiguates(driver):
    navigator, session = _navigator(driver)
    navigator.visit("/")

    navigator.click_link("Client side", index=1)

    assert session.current_path == "/client_side_hello_world_shared_store"


def test_click_link_missing_label(driver):
    navigator, _ = _navigator(driver)
    navigator.visit("/")

    with pytest.raises(ElementNotFoundError) as excinfo:
        navigator.click_link("Nowhere")

    assert "link 'Nowhere'" in str(excinfo.value)


def test_click_button_matches_text_and_value(driver):
    clicked = []
    navigator, session = _navigator(driver)
    navigator.visit("/")
    driver.find_all("button")[0].on_click = lambda _: clicked.append("refresh")
    driver.find_all("input")[0].on_click = lambda _: clicked.append("save")

    navigator.click_button("refresh")
    navigator.click_button("Save")

    assert clicked == ["refresh", "save"]
    assert session.state == ScenarioState.INTERACTING

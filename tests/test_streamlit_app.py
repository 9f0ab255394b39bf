from datetime import date, timedelta
from pathlib import Path

import pytest
from streamlit.testing.v1 import AppTest

APP_PATH = str(Path(__file__).resolve().parent.parent / "streamlit_app.py")


@pytest.fixture
def app():
    at = AppTest.from_file(APP_PATH, default_timeout=30)
    at.secrets["SHOW_DEV_DETAILS"] = False
    return at


def test_empty_app_renders(app):
    app.run()

    assert not app.exception
    assert any("No trips yet." in info.value for info in app.info)
    assert app.metric[0].value == "0 / 90"
    assert app.metric[1].value == "90"


def test_logged_trips_drive_the_numbers(app):
    today = date.today()
    app.session_state["trip_records"] = [
        {
            "id": 1,
            "country": "FRA",
            "start_date": (today - timedelta(days=9)).isoformat(),
            "end_date": today.isoformat(),
        },
        {
            "id": 2,
            "country": "USA",
            "start_date": (today - timedelta(days=30)).isoformat(),
            "end_date": (today - timedelta(days=20)).isoformat(),
        },
    ]
    app.session_state["next_trip_id"] = 3
    app.run()

    assert not app.exception
    assert app.metric[0].value == "10 / 90"
    assert app.metric[1].value == "80"
    assert [m.value for m in app.metric[2:]] == ["80 days", "80 days", "80 days"]

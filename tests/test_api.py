import runpy

import pytest
import uvicorn
from fastapi.testclient import TestClient

from fakes import FakeSheetsClient
from sheet_collector import main
from sheet_collector.config import Settings
from sheet_collector.folders import CallerFolder, FixedFolder, MappedFolder
from sheet_collector.service import SheetService

SUBMISSION = {
    "username": "jane",
    "imageType": "Farmer",
    "imageData": [{"a": 1, "b": 2}, {"a": 3, "b": 4}],
}


@pytest.fixture(autouse=True)
def clear_overrides():
    yield
    main.app.dependency_overrides.clear()


def make_api(resolver=None, settings=None, fake=None):
    fake = fake or FakeSheetsClient()
    main.app.dependency_overrides = {
        main.get_service: lambda: SheetService(fake),
        main.get_resolver: lambda: resolver or FixedFolder("base"),
        main.get_settings: lambda: settings or Settings(),
    }
    # no `with`: the lifespan (real credentials) is not run
    return TestClient(main.app), fake


def test_append_to_sheet_ok():
    api, fake = make_api()
    r = api.post("/google-sheets/append-to-sheet", json=SUBMISSION)

    assert r.status_code == 200
    body = r.json()
    assert body["statusCode"] == 200
    assert body["message"] == "Data successfully appended to the sheet"
    assert fake.rows(body["spreadsheetId"], "Farmer") == [["a", "b"], [1, 2], [3, 4]]
    assert fake.spreadsheets[body["spreadsheetId"]]["folder"] == "base"


def test_missing_fields_rejected_before_remote_calls():
    api, fake = make_api()
    for payload in (
        {"imageType": "Farmer", "imageData": [{"a": 1}]},
        {"username": "jane", "imageData": [{"a": 1}]},
        {"username": "jane", "imageType": "Farmer", "imageData": []},
        {"username": "jane", "imageType": "Farmer", "imageData": "rows"},
        {"username": "jane", "imageType": "Farmer", "imageData": [{"a": {"nested": 1}, "b": [1, 2]}]},
    ):
        r = api.post("/google-sheets/append-to-sheet", json=payload)
        assert r.status_code == 400
        assert r.json()["statusCode"] == 400
    assert fake.calls == []


def test_malformed_json_is_400():
    api, fake = make_api()
    r = api.post(
        "/google-sheets/append-to-sheet",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert r.status_code == 400
    assert fake.calls == []


def test_folder_type_query_selects_folder():
    api, fake = make_api(resolver=MappedFolder({"farmer": "farm-folder"}))

    r = api.post("/google-sheets/append-to-sheet", params={"folderType": "farmer"}, json=SUBMISSION)
    assert r.status_code == 200
    assert fake.spreadsheets[r.json()["spreadsheetId"]]["folder"] == "farm-folder"


def test_missing_or_unknown_folder_type_is_400():
    api, fake = make_api(resolver=MappedFolder({"farmer": "farm-folder"}))

    assert api.post("/google-sheets/append-to-sheet", json=SUBMISSION).status_code == 400
    r = api.post("/google-sheets/append-to-sheet", params={"folderType": "nope"}, json=SUBMISSION)
    assert r.status_code == 400
    assert r.json()["message"] == "Invalid folderType: nope"
    assert fake.calls == []


def test_caller_folder_id_from_body():
    api, fake = make_api(resolver=CallerFolder(FixedFolder("base")))

    r = api.post("/google-sheets/append-to-sheet", json={**SUBMISSION, "folderId": "mine"})
    assert r.status_code == 200
    assert fake.spreadsheets[r.json()["spreadsheetId"]]["folder"] == "mine"


def test_remote_failure_is_generic_500():
    api, fake = make_api(fake=FakeSheetsClient(fail_on_append="Farmer"))

    r = api.post("/google-sheets/append-to-sheet", json=SUBMISSION)
    assert r.status_code == 500
    assert r.json() == {"statusCode": 500, "message": main.GENERIC_ERROR}
    assert "quota" not in r.text
    sid = next(iter(fake.spreadsheets))
    assert fake.rows(sid, "Farmer") == [["a", "b"]]


def test_append_to_workbook_routes_by_category():
    fake = FakeSheetsClient()
    farm = fake.create_spreadsheet("Farm Collector", "shared")
    pay = fake.create_spreadsheet("Payslip Collector", "shared")
    settings = Settings(workbook_mapping={"Farmer": farm, "default": pay})
    api, _ = make_api(settings=settings, fake=fake)

    r = api.post("/google-sheets/append-to-workbook", json={"imageType": "Farmer", "imageData": [{"a": 1}]})
    assert r.status_code == 200
    assert fake.rows(farm, "Farmer") == [["a"], [1]]

    r = api.post("/google-sheets/append-to-workbook", json={"imageType": "Payslip", "imageData": [{"n": 2}]})
    assert r.json()["spreadsheetId"] == pay


def test_append_to_workbook_without_mapping_is_400():
    api, fake = make_api()
    r = api.post("/google-sheets/append-to-workbook", json=SUBMISSION)
    assert r.status_code == 400


def test_health():
    api, _ = make_api()
    assert api.get("/health").json() == {"status": "ok"}


def test_running_module_starts_uvicorn(monkeypatch):
    started = {}
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: started.update(app=app, **kwargs))
    monkeypatch.setenv("PORT", "9123")

    runpy.run_module("sheet_collector.main", run_name="__main__")

    assert started["port"] == 9123
    assert started["host"] == "0.0.0.0"
    assert started["app"].title == "Sheet Collector"

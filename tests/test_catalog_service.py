"""
Catalog service tests against a disposable SQLite catalog.
"""
import pytest
from sqlalchemy import delete

from agentdocs import db as dbmod
from agentdocs import errors
from agentdocs.catalog import CatalogService, display_name_from_slug
from agentdocs.models import Service, UseCase
from agentdocs.seed import seed_catalog


@pytest.fixture
def catalog():
    return CatalogService()


def _snippet_fields(**overrides):
    fields = {
        "use_case_slug": "transcription",
        "service_slug": "deepgram",
        "language": "typescript",
        "title": "Transcribe audio file with Deepgram",
        "description": "Nova-2 transcription",
        "code": "const x = 1;",
        "dependencies": ["@deepgram/sdk@3.0.0"],
        "env_vars": ["DEEPGRAM_API_KEY"],
    }
    fields.update(overrides)
    return fields


def _delete_row(model, row_id):
    with dbmod.SessionLocal() as s:
        s.execute(delete(model).where(model.id == row_id))
        s.commit()


def test_display_name_from_slug():
    assert display_name_from_slug("new-use-case") == "New Use Case"
    assert display_name_from_slug("openai-whisper") == "Openai Whisper"
    assert display_name_from_slug("x") == "X"
    # only ASCII letters start a word
    assert display_name_from_slug("ébc-x") == "éBc X"


def test_create_snippet_creates_use_case_and_service(catalog):
    snippet_id = catalog.create_snippet(_snippet_fields(use_case_slug="new-use-case", service_slug="acme"))

    use_case = catalog.store.get_use_case_by_slug("new-use-case")
    service = catalog.store.get_service_by_slug("acme")
    assert use_case["name"] == "New Use Case"
    assert service["name"] == "Acme"

    snippet = catalog.store.get_snippet(snippet_id)
    assert snippet["verification_status"] == "pending"
    assert snippet["version"] == "1.0.0"
    assert snippet["use_case_id"] == use_case["id"]
    assert snippet["verified_at"] is None


def test_create_snippet_reuses_existing_rows_and_names(catalog):
    catalog.upsert_service({"slug": "deepgram", "name": "Deepgram"})
    catalog.create_snippet(_snippet_fields(service_name="Ignored Name"))
    catalog.create_snippet(_snippet_fields(title="Second"))

    assert len(catalog.store.list_services()) == 1
    assert catalog.store.get_service_by_slug("deepgram")["name"] == "Deepgram"


def test_create_snippet_ignores_caller_status(catalog):
    snippet_id = catalog.create_snippet(_snippet_fields(verification_status="passed"))
    assert catalog.store.get_snippet(snippet_id)["verification_status"] == "pending"


def test_create_snippet_missing_field_is_validation_error(catalog):
    fields = _snippet_fields()
    del fields["code"]
    with pytest.raises(errors.ValidationError) as exc:
        catalog.create_snippet(fields)
    assert exc.value.details["errors"][0]["loc"] == ("code",)
    assert catalog.store.list_use_cases() == []


def test_update_verification_passed_then_failed(catalog):
    snippet_id = catalog.create_snippet(_snippet_fields())
    catalog.update_verification_status(snippet_id, "passed", latency_ms=850, cost_usd=0.0043, quality_score=94)

    snippet = catalog.store.get_snippet(snippet_id)
    assert snippet["verification_status"] == "passed"
    assert snippet["verified_at"] is not None
    assert snippet["benchmark_quality_score"] == 94

    catalog.update_verification_status(snippet_id, "failed", error="exit code 1")
    snippet = catalog.store.get_snippet(snippet_id)
    assert snippet["verification_status"] == "failed"
    assert snippet["verification_error"] == "exit code 1"
    assert snippet["verified_at"] is None
    assert snippet["benchmark_latency_ms"] is None
    assert snippet["benchmark_cost_usd"] is None
    assert snippet["benchmark_quality_score"] is None


def test_update_verification_rejects_bad_input(catalog):
    snippet_id = catalog.create_snippet(_snippet_fields())
    with pytest.raises(errors.ValidationError):
        catalog.update_verification_status(snippet_id, "done")
    with pytest.raises(errors.ValidationError):
        catalog.update_verification_status(snippet_id, "passed", quality_score=101)
    with pytest.raises(errors.NotFound):
        catalog.update_verification_status(9999, "passed")


def test_use_case_with_services_ranked(catalog):
    seed_catalog(catalog)
    result = catalog.get_use_case_with_services("transcription")

    assert result["name"] == "Audio/Video Transcription"
    services = result["services"]
    assert [s["slug"] for s in services] == ["deepgram", "openai-whisper"]
    assert services[0]["avg_quality_score"] == 94
    assert services[0]["recommendation"] == "best-value"
    assert services[1]["recommendation"] == "best-value"
    # assemblyai has no snippets, so it is not listed
    assert "assemblyai" not in [s["slug"] for s in services]


def test_use_case_unknown_slug(catalog):
    with pytest.raises(errors.NotFound):
        catalog.get_use_case_with_services("nope")
    assert catalog.list_by_use_case("nope") == []


def test_use_case_skips_dangling_service(catalog):
    snippet_id = catalog.create_snippet(_snippet_fields())
    catalog.create_snippet(_snippet_fields(service_slug="openai-whisper", title="Whisper"))
    _delete_row(Service, catalog.store.get_snippet(snippet_id)["service_id"])

    result = catalog.get_use_case_with_services("transcription")
    assert [s["slug"] for s in result["services"]] == ["openai-whisper"]

    listed = catalog.list_by_use_case("transcription")
    assert [s["service"] for s in listed] == [None, {"slug": "openai-whisper", "name": "Openai Whisper"}]


def test_benchmark_comparison(catalog):
    seed_catalog(catalog)
    comparison = catalog.get_benchmark_comparison("email-sending")
    assert comparison["use_case"]["slug"] == "email-sending"
    assert [s["slug"] for s in comparison["services"]] == ["resend", "sendgrid"]
    assert comparison["last_updated"].endswith("Z")


def test_list_use_cases_and_services_with_counts(catalog):
    seed_catalog(catalog)
    use_cases = {uc["slug"]: uc for uc in catalog.list_use_cases()}
    assert use_cases["transcription"]["snippet_count"] == 2
    assert use_cases["transcription"]["verified_count"] == 2

    services = {s["slug"]: s for s in catalog.list_services()}
    assert services["assemblyai"]["snippet_count"] == 0


def test_service_with_snippets_groups_by_use_case(catalog):
    catalog.create_snippet(_snippet_fields())
    catalog.create_snippet(_snippet_fields(use_case_slug="summaries", title="Summaries"))

    service = catalog.get_service_with_snippets("deepgram")
    assert sorted(service["snippets_by_use_case"]) == ["summaries", "transcription"]
    first = service["snippets_by_use_case"]["transcription"][0]
    assert first["use_case"] == {"slug": "transcription", "name": "Transcription"}

    with pytest.raises(errors.NotFound):
        catalog.get_service_with_snippets("nope")


def test_list_by_use_case_language_filter(catalog):
    catalog.create_snippet(_snippet_fields())
    catalog.create_snippet(_snippet_fields(language="python", title="py"))
    assert [s["title"] for s in catalog.list_by_use_case("transcription", "python")] == ["py"]
    assert len(catalog.list_by_use_case("transcription")) == 2


def test_snippet_summary_and_full(catalog):
    snippet_id = catalog.create_snippet(_snippet_fields())

    summary = catalog.get_snippet_summary(snippet_id)
    assert "code" not in summary
    assert summary["service"] == {"slug": "deepgram", "name": "Deepgram"}

    pending = catalog.get_snippet_full(snippet_id)
    assert pending == {"error": "Snippet not verified", "status": "pending"}
    assert errors.is_not_verified(pending)

    catalog.update_verification_status(snippet_id, "passed", latency_ms=850, cost_usd=0.0043, quality_score=94)
    full = catalog.get_snippet_full(snippet_id)
    assert not errors.is_not_verified(full)
    assert full["code"] == "const x = 1;"
    assert full["benchmarks"] == {"latency_ms": 850, "cost_usd": 0.0043, "quality_score": 94}
    assert full["use_case"]["slug"] == "transcription"

    with pytest.raises(errors.NotFound):
        catalog.get_snippet_summary(9999)
    with pytest.raises(errors.NotFound):
        catalog.get_snippet_full(9999)


def test_list_snippets_newest_first(catalog):
    ids = [catalog.create_snippet(_snippet_fields(title=f"t{i}")) for i in range(3)]
    catalog.update_verification_status(ids[0], "passed")

    listed = catalog.list_snippets(limit=2)
    assert [s["id"] for s in listed] == [ids[2], ids[1]]
    assert listed[0]["service"] == "deepgram"
    assert listed[0]["use_case"] == "transcription"

    assert [s["id"] for s in catalog.list_snippets(status="passed")] == [ids[0]]

    with pytest.raises(errors.ValidationError):
        catalog.list_snippets(limit=0)
    with pytest.raises(errors.ValidationError):
        catalog.list_snippets(status="bogus")


def test_list_snippets_dangling_use_case(catalog):
    snippet_id = catalog.create_snippet(_snippet_fields())
    _delete_row(UseCase, catalog.store.get_snippet(snippet_id)["use_case_id"])
    assert catalog.list_snippets()[0]["use_case"] is None


def test_search_requires_use_case(catalog):
    catalog.create_snippet(_snippet_fields())
    with pytest.raises(errors.ValidationError):
        catalog.search("")
    results = catalog.search("transcription", query="nova")
    assert [r["service"] for r in results] == ["deepgram"]
    assert catalog.search("transcription", query="nothing-matches") == []


def test_upserts_update_in_place(catalog):
    first = catalog.upsert_use_case({"slug": "ocr", "name": "OCR"})
    second = catalog.upsert_use_case({"slug": "ocr", "name": "Text Recognition", "icon": "🔎"})
    assert first == second
    assert catalog.store.get_use_case(first)["name"] == "Text Recognition"

    with pytest.raises(errors.ValidationError):
        catalog.upsert_service({"slug": "x"})


def test_verification_runs(catalog):
    snippet_id = catalog.create_snippet(_snippet_fields())
    run_1 = catalog.start_verification_run(snippet_id, {"runner_id": "runner-a"})
    run_2 = catalog.start_verification_run(snippet_id)

    catalog.complete_verification_run(run_1, {"status": "passed", "stdout": "ok", "exit_code": 0})
    runs = catalog.list_verification_runs(snippet_id)
    assert [r["id"] for r in runs] == [run_2, run_1]
    assert runs[1]["status"] == "passed"
    assert runs[1]["completed_at"] is not None
    assert runs[0]["status"] == "running"

    # the snippet itself is untouched
    assert catalog.store.get_snippet(snippet_id)["verification_status"] == "pending"

    with pytest.raises(errors.Conflict):
        catalog.complete_verification_run(run_1, {"status": "failed"})
    with pytest.raises(errors.ValidationError):
        catalog.complete_verification_run(run_2, {"status": "running"})
    with pytest.raises(errors.NotFound):
        catalog.complete_verification_run(9999, {"status": "passed"})
    with pytest.raises(errors.NotFound):
        catalog.start_verification_run(9999)


def test_seed_is_rerunnable(catalog):
    first = seed_catalog(catalog)
    second = seed_catalog(catalog)
    assert first == {"use_cases": 3, "services": 6, "snippets": 5}
    assert second["snippets"] == 0
    assert len(catalog.list_snippets()) == 5

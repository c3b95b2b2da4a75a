"""HTTP tests for the forms API."""

import uuid

import pytest
from httpx import AsyncClient


FIELDS = [
    {"type": "text", "label": "Name", "name": "name", "required": True},
    {"type": "email", "label": "Email", "name": "email"},
    {"type": "checkbox", "label": "Topics", "name": "topics", "options": ["api", "ui"]},
    {"type": "file", "label": "Resume", "name": "resume"},
]


async def _create_form(client: AsyncClient, **overrides) -> dict:
    body = {"title": "Application", "fields": FIELDS, "status": "published"}
    body.update(overrides)
    res = await client.post("/forms", json=body)
    assert res.status_code == 201, res.text
    return res.json()


# =============================================================================
# Builder
# =============================================================================

@pytest.mark.asyncio
async def test_create_and_read_form(client: AsyncClient):
    created = await _create_form(client, thankYouMessage="Cheers", submissionLimit=10)

    assert created["thankYouMessage"] == "Cheers"
    assert created["submissionLimit"] == 10
    assert created["submissionsCount"] == 0

    res = await client.get(f"/forms/{created['id']}")
    assert res.status_code == 200
    assert [field["name"] for field in res.json()["fields"]] == [
        "name",
        "email",
        "topics",
        "resume",
    ]


@pytest.mark.asyncio
async def test_create_form_invalid_definition(client: AsyncClient):
    res = await client.post("/forms", json={"title": "Empty", "fields": []})

    assert res.status_code == 400
    assert res.json() == {"error": "Form must have at least one field to be saved"}


@pytest.mark.asyncio
async def test_create_form_missing_title(client: AsyncClient):
    res = await client.post("/forms", json={"fields": FIELDS})

    assert res.status_code == 400
    assert "title" in res.json()["error"]


@pytest.mark.asyncio
async def test_list_forms(client: AsyncClient):
    await _create_form(client)

    res = await client.get("/forms")

    assert res.status_code == 200
    assert len(res.json()) == 1
    assert res.json()[0]["title"] == "Application"


@pytest.mark.asyncio
async def test_get_unknown_form(client: AsyncClient):
    res = await client.get(f"/forms/{uuid.uuid4()}")

    assert res.status_code == 404
    assert res.json() == {"error": "Form not found"}


@pytest.mark.asyncio
async def test_malformed_form_id(client: AsyncClient):
    res = await client.get("/forms/not-a-uuid")

    assert res.status_code == 400
    assert "error" in res.json()


@pytest.mark.asyncio
async def test_update_form(client: AsyncClient):
    created = await _create_form(client)

    res = await client.put(
        f"/forms/{created['id']}", json={"title": "Renamed", "submissionLimit": 2}
    )

    assert res.status_code == 200
    assert res.json()["title"] == "Renamed"
    assert res.json()["submissionLimit"] == 2
    assert res.json()["status"] == "published"


@pytest.mark.asyncio
async def test_duplicate_publish_unpublish(client: AsyncClient):
    created = await _create_form(client)

    dup = await client.post(f"/forms/{created['id']}/duplicate")
    assert dup.status_code == 201
    assert dup.json()["title"] == "Application (Copy)"
    assert dup.json()["id"] != created["id"]

    res = await client.post(f"/forms/{created['id']}/unpublish")
    assert res.json()["status"] == "draft"
    res = await client.post(f"/forms/{created['id']}/publish")
    assert res.json()["status"] == "published"


@pytest.mark.asyncio
async def test_delete_form(client: AsyncClient):
    created = await _create_form(client)

    res = await client.delete(f"/forms/{created['id']}")
    assert res.status_code == 200
    assert res.json() == {"message": "Form deleted"}

    res = await client.get(f"/forms/{created['id']}")
    assert res.status_code == 404


# =============================================================================
# Submissions
# =============================================================================

@pytest.mark.asyncio
async def test_submit_json(client: AsyncClient):
    created = await _create_form(client)

    res = await client.post(
        f"/forms/{created['id']}/submissions",
        json={"name": "Ada", "email": "ada@example.com", "topics": ["api"]},
    )

    assert res.status_code == 201
    body = res.json()
    assert body["message"] == "Thank you for your submission!"
    uuid.UUID(body["submissionId"])

    form = (await client.get(f"/forms/{created['id']}")).json()
    assert form["submissionsCount"] == 1


@pytest.mark.asyncio
async def test_submit_validation_error(client: AsyncClient):
    created = await _create_form(client)

    res = await client.post(
        f"/forms/{created['id']}/submissions", json={"name": "Ada", "email": "nope"}
    )

    assert res.status_code == 400
    assert res.json() == {"error": 'Invalid email format for field "Email"'}


@pytest.mark.asyncio
async def test_submit_to_draft_form(client: AsyncClient):
    created = await _create_form(client, status="draft")

    res = await client.post(f"/forms/{created['id']}/submissions", json={"name": "Ada"})

    assert res.status_code == 403
    assert res.json() == {"error": "Form is not published"}


@pytest.mark.asyncio
async def test_submission_limit(client: AsyncClient):
    created = await _create_form(client, submissionLimit=1)
    url = f"/forms/{created['id']}/submissions"

    first = await client.post(url, json={"name": "Ada"})
    second = await client.post(url, json={"name": "Grace"})

    assert first.status_code == 201
    assert second.status_code == 403
    assert second.json() == {"error": "Submission limit reached"}


@pytest.mark.asyncio
async def test_submit_invalid_json(client: AsyncClient):
    created = await _create_form(client)

    res = await client.post(
        f"/forms/{created['id']}/submissions",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )

    assert res.status_code == 400
    assert res.json() == {"error": "Invalid JSON body"}


@pytest.mark.asyncio
async def test_submit_multipart_with_upload(client: AsyncClient):
    created = await _create_form(client)

    res = await client.post(
        f"/forms/{created['id']}/submissions",
        data={"name": "Ada", "topics": ["api", "ui"]},
        files={"resume": ("cv.pdf", b"%PDF-1.7", "application/pdf")},
    )
    assert res.status_code == 201, res.text

    submission_id = res.json()["submissionId"]
    res = await client.get(f"/forms/{created['id']}/submissions/{submission_id}")
    assert res.status_code == 200
    submission = res.json()
    assert submission["form"] == created["id"]
    assert submission["data"] == {"name": "Ada", "topics": ["api", "ui"], "resume": "cv.pdf"}
    assert submission["files"][0]["originalName"] == "cv.pdf"
    assert submission["files"][0]["mimeType"] == "application/pdf"
    assert submission["files"][0]["size"] == 8

    stored = await client.get(submission["files"][0]["url"])
    assert stored.status_code == 200
    assert stored.content == b"%PDF-1.7"


@pytest.mark.asyncio
async def test_list_and_delete_submissions(client: AsyncClient):
    created = await _create_form(client)
    url = f"/forms/{created['id']}/submissions"
    submitted = (await client.post(url, json={"name": "Ada"})).json()

    listed = await client.get(url)
    assert listed.status_code == 200
    assert [s["id"] for s in listed.json()] == [submitted["submissionId"]]

    res = await client.delete(f"{url}/{submitted['submissionId']}")
    assert res.status_code == 200
    assert res.json() == {"message": "Submission deleted successfully"}

    form = (await client.get(f"/forms/{created['id']}")).json()
    assert form["submissionsCount"] == 0

    res = await client.get(f"{url}/{submitted['submissionId']}")
    assert res.status_code == 404
    assert res.json() == {"error": "Submission not found"}


@pytest.mark.asyncio
async def test_analytics_endpoint(client: AsyncClient):
    created = await _create_form(client)
    url = f"/forms/{created['id']}/submissions"
    await client.post(url, json={"name": "Ada", "topics": ["api"]})
    await client.post(url, json={"name": "Grace", "topics": ["api", "ui"]})

    res = await client.get(f"/forms/{created['id']}/analytics")

    assert res.status_code == 200
    body = res.json()
    assert body["total"] == 2
    assert body["fields"]["topics"] == {"type": "categorical", "data": {"api": 2, "ui": 1}}
    assert body["fields"]["name"] == {
        "type": "numeric",
        "totalResponses": 2,
        "responseRate": "100.0",
    }
    assert "createdAt" in body


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    res = await client.get("/health")

    assert res.status_code == 200
    assert res.json()["status"] == "ok"

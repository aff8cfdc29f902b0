import pytest
from fastapi.testclient import TestClient

from apps.backend.main import app, get_agent
from retrieval_core.errors import FetchError, ProviderError
from retrieval_core.store import StoreMode
from web_ingest.fetcher import validate_url

CRYPTO = "https://news.example.com/crypto"
MACRO = "https://news.example.com/macro"


@pytest.fixture()
def client_for(make_agent):
    def _client(**agent_kwargs):
        agent = make_agent(**agent_kwargs)
        app.dependency_overrides[get_agent] = lambda: agent
        return TestClient(app), agent

    yield _client
    app.dependency_overrides.clear()


def test_health(client_for):
    client, _ = client_for()

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_process_returns_segment_count(client_for):
    client, agent = client_for()

    response = client.post("/process", json={"urls": [CRYPTO, MACRO]})

    assert response.status_code == 200
    assert response.json()["count"] == len(agent.store.load().documents) > 0


@pytest.mark.parametrize(
    "body",
    [
        {"urls": []},
        {"urls": ["not-a-url"]},
        {"urls": [f"https://news.example.com/{i}" for i in range(6)]},
        {},
    ],
)
def test_process_rejects_invalid_requests(client_for, body):
    client, _ = client_for()

    assert client.post("/process", json=body).status_code == 422


def test_ask_rejects_short_question(client_for):
    client, _ = client_for()

    assert client.post("/ask", json={"question": "hi"}).status_code == 422


def test_ask_with_urls_returns_answer_and_sources(client_for):
    client, _ = client_for(generate=lambda messages: "Oil slipped.")

    response = client.post("/ask", json={"question": "What happened to oil?", "urls": [MACRO, CRYPTO]})

    assert response.status_code == 200
    data = response.json()
    assert data["answer"] == "Oil slipped."
    assert set(data["sources"]) == {MACRO, CRYPTO}


def test_blocked_url_maps_to_bad_request(client_for, pages):
    def fetch(url):
        validate_url(url)
        return pages[url]

    client, _ = client_for(fetch=fetch)

    response = client.post("/ask", json={"question": "What is here?", "urls": ["http://127.0.0.1/admin"]})

    assert response.status_code == 400
    assert "not allowed" in response.json()["detail"]


def test_provider_failure_maps_to_bad_gateway(client_for):
    def generate(messages):
        raise ProviderError("Missing GROQ_API_KEY")

    client, _ = client_for(generate=generate)

    response = client.post("/ask", json={"question": "What happened to oil?", "urls": [MACRO]})

    assert response.status_code == 502


def test_ephemeral_mode_without_urls_is_bad_request(client_for):
    client, _ = client_for(mode=StoreMode.EPHEMERAL)

    response = client.post("/ask", json={"question": "What happened to oil?"})

    assert response.status_code == 400
    assert "at least one URL" in response.json()["detail"]


def test_process_fetch_failure_maps_to_bad_request(client_for):
    def fetch(url):
        raise FetchError(f"Failed to fetch URL: {url} (status 404)")

    client, agent = client_for(fetch=fetch)

    response = client.post("/process", json={"urls": [CRYPTO]})

    assert response.status_code == 400
    assert "status 404" in response.json()["detail"]
    assert agent.store.load().is_empty

from __future__ import annotations

from conftest import FakeLLM

HEADERS = {"X-User-Id": "user-1"}


def test_chat_stores_memory_and_search_finds_it(client, use_llm) -> None:
    use_llm(FakeLLM(["Love that! What's the next small step?", '{"score": 5, "issues": []}']))

    response = client.post(
        "/chat",
        json={"message": "I realized I speak up more after a walk", "history": [{"role": "assistant", "content": "Hi!"}]},
        headers=HEADERS,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["reply"] == "Love that! What's the next small step?"
    assert body["memory_stored"]
    assert body["confidence"] == 5

    found = client.get("/memories/search", params={"q": "walk"}, headers=HEADERS).json()["memories"]
    assert found[0]["type"] == "insight"
    assert found[0]["metadata"] == {"source": "chat"}


def test_chat_requires_message(client, use_llm) -> None:
    use_llm(FakeLLM())

    assert client.post("/chat", json={"message": ""}, headers=HEADERS).status_code == 422


def test_chat_upstream_failure_is_reported(client, use_llm) -> None:
    use_llm(FakeLLM([""]))

    response = client.post("/chat", json={"message": "hello", "use_reflection": False}, headers=HEADERS)

    assert response.status_code == 502
    assert response.json()["code"] == "LLM_BAD_OUTPUT"

"""
Tests for the chat endpoint.
"""

from mnemo.models.memory import Memory
from mnemo.services.llm_service import LLMService
from tests.factories import build_settings, make_memory


def chat(client, message="Hi"):
    return client.post("/api/llm/chat", json={"message": message})


class TestChatContext:

    def test_no_memories_sends_bare_message(self, auth_client, fake_llm):
        fake_llm.replies.append("Hello!")

        response = chat(auth_client, "Hi there")

        assert response.status_code == 200
        assert response.json() == {"output": "Hello!"}
        assert fake_llm.last_user_message == "Hi there"

    def test_fallback_lists_only_own_memories(self, auth_client, db_session, test_user, other_user, fake_llm):
        make_memory(db_session, test_user, "Dog is named Rex")
        make_memory(db_session, other_user, "Grace's cat is Tom")

        response = chat(auth_client, "What's my dog's name?")

        assert response.status_code == 200
        prompt = fake_llm.last_user_message
        assert prompt.startswith("\n\nRelevant memories:\n")
        assert "Dog is named Rex" in prompt
        assert "Tom" not in prompt

    def test_vector_search_selects_relevant_memories(self, auth_client, db_session, test_user, fake_llm, fake_embeddings):
        fake_embeddings.vectors["What do I drink?"] = [1.0, 0.0, 0.0]
        make_memory(db_session, test_user, "Drinks espresso", embedding=[1.0, 0.0, 0.0])
        make_memory(db_session, test_user, "Drinks green tea", embedding=[0.9, 0.1, 0.0])
        make_memory(db_session, test_user, "Drinks oat milk", embedding=[0.8, 0.2, 0.0])
        make_memory(db_session, test_user, "Owns a red bike", embedding=[0.0, 0.0, 1.0])

        response = chat(auth_client, "What do I drink?")

        assert response.status_code == 200
        prompt = fake_llm.last_user_message
        assert "Drinks espresso" in prompt
        assert "Drinks green tea" in prompt
        assert "Drinks oat milk" in prompt
        assert "red bike" not in prompt

    def test_history_is_accepted(self, auth_client, fake_llm):
        response = auth_client.post(
            "/api/llm/chat",
            json={
                "message": "And now?",
                "conversationHistory": [
                    {"role": "user", "content": "Hi"},
                    {"role": "assistant", "content": "Hello!"}
                ]
            }
        )

        assert response.status_code == 200
        assert fake_llm.last_user_message == "And now?"


class TestMemoryExtraction:

    def test_annotation_is_saved_and_stripped(self, auth_client, db_session, test_user, fake_llm):
        fake_llm.replies.append("Noted! [MEMORY: User likes pasta | food, preference, italian, dinner]")

        response = chat(auth_client, "I like pasta")

        assert response.json() == {"output": "Noted!"}
        db_session.expire_all()
        memories = db_session.query(Memory).filter(Memory.user_id == test_user.id).all()
        assert len(memories) == 1
        assert memories[0].content == "User likes pasta"
        assert memories[0].category == "personal"
        assert memories[0].get_tags() == ["food", "preference", "italian"]

    def test_short_annotation_is_not_saved(self, auth_client, db_session, test_user, fake_llm):
        fake_llm.replies.append("Sure. [MEMORY: Tiny | x]")

        response = chat(auth_client, "Remember tiny")

        assert response.json() == {"output": "Sure."}
        assert db_session.query(Memory).count() == 0

    def test_duplicate_skipped_when_embeddings_available(self, auth_client, db_session, test_user, fake_llm, fake_embeddings):
        make_memory(db_session, test_user, "User likes pasta", embedding=[1.0, 0.0, 0.0])
        fake_embeddings.vectors["User loves pasta"] = [1.0, 0.02, 0.0]
        fake_llm.replies.append("Noted! [MEMORY: User loves pasta | food]")

        chat(auth_client, "I love pasta")

        assert db_session.query(Memory).filter(Memory.user_id == test_user.id).count() == 1

    def test_duplicate_saved_when_embeddings_unavailable(self, auth_client, db_session, test_user, fake_llm, fake_embeddings):
        make_memory(db_session, test_user, "User likes pasta")
        fake_embeddings.available = False
        fake_llm.replies.append("Noted! [MEMORY: User likes pasta | food]")

        chat(auth_client, "I like pasta")

        assert db_session.query(Memory).filter(Memory.user_id == test_user.id).count() == 2


class TestChatErrors:

    def test_llm_not_configured(self, auth_client, services, monkeypatch):
        monkeypatch.setattr(services["chat"], "llm_service", LLMService(build_settings(llm_api_url=None)))

        response = chat(auth_client)

        assert response.status_code == 500
        assert response.json() == {"error": "No LLM configured (LLM_API_URL missing)"}

    def test_llm_upstream_failure(self, auth_client, fake_llm):
        fake_llm.status_code = 502
        fake_llm.error_text = "bad gateway"

        response = chat(auth_client)

        assert response.status_code == 500
        assert response.json() == {"error": "LLM request failed: 502 bad gateway"}

    def test_empty_message(self, auth_client, fake_llm):
        response = chat(auth_client, "")

        assert response.status_code == 400
        assert response.json() == {"error": "Message is required"}
        assert fake_llm.requests == []

    def test_missing_message(self, auth_client):
        response = auth_client.post("/api/llm/chat", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "Message is required"}

    def test_message_too_long(self, auth_client):
        response = chat(auth_client, "x" * 5001)

        assert response.status_code == 400
        assert response.json() == {"error": "Message too long"}

    def test_history_too_long(self, auth_client):
        history = [{"role": "user", "content": "hi"}] * 51

        response = auth_client.post("/api/llm/chat", json={"message": "Hi", "conversationHistory": history})

        assert response.status_code == 400
        assert response.json() == {"error": "Conversation history too long"}


class TestChatAuthentication:

    def test_requires_session(self, client):
        response = chat(client)

        assert response.status_code == 401
        assert response.json() == {"error": "Not authenticated"}

    def test_auth_checked_before_body(self, client):
        response = client.post("/api/llm/chat", json={})

        assert response.status_code == 401
        assert response.json() == {"error": "Not authenticated"}

    def test_invalid_cookie_is_cleared(self, client):
        client.cookies.set("session", "not-a-jwt")

        response = chat(client)

        assert response.status_code == 401
        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith("session=")
        assert "Max-Age=0" in set_cookie

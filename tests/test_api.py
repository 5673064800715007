# ============================================================================
# API Endpoint Tests
# ============================================================================
import pytest
from uuid import uuid4
from httpx import AsyncClient

from tests.conftest import auth_headers

class TestHealthEndpoint:
    """Tests for health check endpoint"""

    @pytest.mark.asyncio
    async def test_health_check(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

class TestAuthEndpoints:
    """Tests for registration and login"""

    @pytest.mark.asyncio
    async def test_register_and_login(self, client: AsyncClient):
        response = await client.post("/api/auth/register", json={
            "email": "New.Student@University.edu",
            "password": "longenough",
            "firstName": "Chipo",
            "lastName": "Ncube",
        })

        assert response.status_code == 201
        data = response.json()
        assert data["user"]["email"] == "new.student@university.edu"
        assert data["user"]["role"] == "student"
        assert data["token"]

        response = await client.post("/api/auth/login", json={
            "email": "new.student@university.edu",
            "password": "longenough",
        })
        assert response.status_code == 200

        me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {response.json()['token']}"})
        assert me.status_code == 200
        assert me.json()["firstName"] == "Chipo"

    @pytest.mark.asyncio
    async def test_duplicate_email(self, client: AsyncClient, student):
        response = await client.post("/api/auth/register", json={
            "email": student.email,
            "password": "longenough",
            "firstName": "Copy",
            "lastName": "Cat",
        })

        assert response.status_code == 400
        assert response.json()["error_code"] == "CONFLICT"

    @pytest.mark.asyncio
    async def test_wrong_password(self, client: AsyncClient, student):
        response = await client.post("/api/auth/login", json={
            "email": student.email,
            "password": "not-the-password",
        })
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_short_password_rejected(self, client: AsyncClient):
        response = await client.post("/api/auth/register", json={
            "email": "short@university.edu",
            "password": "short",
            "firstName": "Short",
            "lastName": "Password",
        })
        assert response.status_code == 422

class TestChatEndpoints:
    """Tests for the tutoring chat endpoints"""

    @pytest.mark.asyncio
    async def test_requires_authentication(self, client: AsyncClient, assignment):
        response = await client.get(f"/api/chat/session/{assignment.id}")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_professor_cannot_chat(self, client: AsyncClient, professor, assignment):
        response = await client.get(f"/api/chat/session/{assignment.id}", headers=auth_headers(professor))

        assert response.status_code == 403
        assert response.json()["error_code"] == "ACCESS_DENIED"

    @pytest.mark.asyncio
    async def test_get_session_creates_greeting(self, client: AsyncClient, student, assignment, article):
        response = await client.get(f"/api/chat/session/{assignment.id}", headers=auth_headers(student))

        assert response.status_code == 200
        data = response.json()
        assert data["currentStage"] == "Comprehension"
        assert data["userMessageCount"] == 0
        assert len(data["messages"]) == 1
        assert data["messages"][0]["ordinal"] == 0
        assert data["messages"][0]["sender"] == "ai"
        assert data["assignment"]["article"]["title"] == article.title
        assert data["grade"] is None

    @pytest.mark.asyncio
    async def test_unknown_assignment(self, client: AsyncClient, student):
        response = await client.get(f"/api/chat/session/{uuid4()}", headers=auth_headers(student))

        assert response.status_code == 404
        assert response.json()["error_code"] == "ASSIGNMENT_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_send_message(self, client: AsyncClient, student, assignment):
        headers = auth_headers(student)
        session = (await client.get(f"/api/chat/session/{assignment.id}", headers=headers)).json()

        response = await client.post("/api/chat/message", headers=headers, json={
            "chatSessionId": session["id"],
            "text": "What is fragmentation?",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["userMessage"]["ordinal"] == 1
        assert data["userMessage"]["text"] == "What is fragmentation?"
        assert data["aiMessage"]["ordinal"] == 2
        assert data["aiMessage"]["sender"] == "ai"
        assert data["newStage"] == "Comprehension"
        assert data["stageAdvanced"] is False

    @pytest.mark.asyncio
    async def test_third_message_advances_stage(self, client: AsyncClient, student, assignment):
        headers = auth_headers(student)
        session = (await client.get(f"/api/chat/session/{assignment.id}", headers=headers)).json()

        for text in ("It is about habitat", "Smaller patches"):
            await client.post("/api/chat/message", headers=headers, json={
                "chatSessionId": session["id"], "text": text,
            })
        response = await client.post("/api/chat/message", headers=headers, json={
            "chatSessionId": session["id"], "text": "What is fragmentation?",
        })

        data = response.json()
        assert data["newStage"] == "Evidence"
        assert data["stageAdvanced"] is True
        assert data["aiMessage"]["text"].startswith("Great progress!")

        session = (await client.get(f"/api/chat/session/{assignment.id}", headers=headers)).json()
        assert [m["ordinal"] for m in session["messages"]] == list(range(7))
        assert session["currentStage"] == "Evidence"

    @pytest.mark.asyncio
    async def test_blank_message_rejected(self, client: AsyncClient, student, assignment):
        headers = auth_headers(student)
        session = (await client.get(f"/api/chat/session/{assignment.id}", headers=headers)).json()

        response = await client.post("/api/chat/message", headers=headers, json={
            "chatSessionId": session["id"], "text": "   ",
        })

        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_other_students_session_forbidden(self, client: AsyncClient, student, other_student, assignment):
        session = (await client.get(f"/api/chat/session/{assignment.id}", headers=auth_headers(student))).json()

        response = await client.post("/api/chat/message", headers=auth_headers(other_student), json={
            "chatSessionId": session["id"], "text": "Hello",
        })

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_session(self, client: AsyncClient, student):
        response = await client.post("/api/chat/message", headers=auth_headers(student), json={
            "chatSessionId": str(uuid4()), "text": "Hello",
        })

        assert response.status_code == 403
        assert response.json()["error_code"] == "ACCESS_DENIED"

    @pytest.mark.asyncio
    async def test_unknown_and_foreign_sessions_look_the_same(
        self, client: AsyncClient, student, other_student, assignment
    ):
        session = (await client.get(f"/api/chat/session/{assignment.id}", headers=auth_headers(student))).json()
        headers = auth_headers(other_student)

        foreign = await client.post("/api/chat/message", headers=headers, json={
            "chatSessionId": session["id"], "text": "Hello",
        })
        unknown = await client.post("/api/chat/message", headers=headers, json={
            "chatSessionId": str(uuid4()), "text": "Hello",
        })

        assert foreign.status_code == unknown.status_code == 403
        assert foreign.json() == unknown.json()

class TestTranscriptAndGrading:
    """Tests for professor transcript and grading endpoints"""

    @pytest.mark.asyncio
    async def test_transcript_and_grade(self, client: AsyncClient, student, professor, assignment):
        session = (await client.get(f"/api/chat/session/{assignment.id}", headers=auth_headers(student))).json()
        await client.post("/api/chat/message", headers=auth_headers(student), json={
            "chatSessionId": session["id"], "text": "Habitat loss matters more",
        })

        transcript = await client.get(f"/api/chat/sessions/{session['id']}", headers=auth_headers(professor))
        assert transcript.status_code == 200
        assert transcript.json()["student"]["firstName"] == "Tendai"
        assert len(transcript.json()["messages"]) == 3

        response = await client.put(f"/api/chat/sessions/{session['id']}/grade", headers=auth_headers(professor), json={
            "rubricScores": [
                {"criterion": "Comprehension", "score": 9, "maxPoints": 10},
                {"criterion": "Evidence", "score": 7, "maxPoints": 10},
            ],
            "feedback": "Nice work",
        })
        assert response.status_code == 200
        assert response.json()["overallScore"] == 16

        session = (await client.get(f"/api/chat/session/{assignment.id}", headers=auth_headers(student))).json()
        assert session["grade"]["feedback"] == "Nice work"

    @pytest.mark.asyncio
    async def test_other_professor_cannot_grade(self, client: AsyncClient, student, other_professor, assignment):
        session = (await client.get(f"/api/chat/session/{assignment.id}", headers=auth_headers(student))).json()

        response = await client.put(
            f"/api/chat/sessions/{session['id']}/grade",
            headers=auth_headers(other_professor),
            json={"overallScore": 10},
        )
        assert response.status_code == 403

        response = await client.get(f"/api/chat/sessions/{session['id']}", headers=auth_headers(other_professor))
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_session_indistinguishable_for_professors(
        self, client: AsyncClient, student, other_professor, assignment
    ):
        session = (await client.get(f"/api/chat/session/{assignment.id}", headers=auth_headers(student))).json()
        headers = auth_headers(other_professor)

        for method, suffix, body in (("GET", "", None), ("PUT", "/grade", {"overallScore": 10})):
            foreign = await client.request(method, f"/api/chat/sessions/{session['id']}{suffix}", headers=headers, json=body)
            unknown = await client.request(method, f"/api/chat/sessions/{uuid4()}{suffix}", headers=headers, json=body)

            assert foreign.status_code == unknown.status_code == 403
            assert foreign.json() == unknown.json()

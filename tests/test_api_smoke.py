from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

API = "/v1"


def submit(client, hdr, set_id, text):
    body = {"answers": [{"number": i + 1, "answer": c} for i, c in enumerate(text)]}
    return client.post(f"{API}/quizzes/submit/{set_id}", headers=hdr, json=body)


def test_health(client):
    r = client.get("/health"); assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_login_submit_and_review(client, make_set):
    qs = make_set("abcda")
    r = client.post(f"{API}/auth/mock-login", json={"user_id": 11, "roles": ["student"]})
    assert r.status_code == 200; token = r.json()["access_token"]; hdr = {"Authorization": f"Bearer {token}"}

    r = submit(client, hdr, qs.id, "abcdb")
    assert r.status_code == 201
    body = r.json()
    assert (body["correct"], body["grade"], body["attempt_no"]) == (4, 80, 1)

    r = client.get(f"{API}/quizzes/result", headers=hdr); assert r.status_code == 200
    review = r.json()
    assert review["id"] == body["submission_id"]
    assert len(review["answers"]) == 5
    assert review["answers"][4]["is_correct"] is False

    r = client.get(f"{API}/quizzes/submissions/{body['submission_id']}", headers=hdr)
    assert r.status_code == 200 and r.json()["grade"] == 80

    r = client.get(f"{API}/quizzes/submissions", headers=hdr); assert r.status_code == 200
    assert r.json()["total"] == 1

    r = client.get(f"{API}/quizzes/summary", headers=hdr); assert r.status_code == 200
    assert r.json() == {"quiz_count": 1, "average_grade": 80.0}


def test_invalid_submission_envelope(client, make_set, auth_headers):
    qs = make_set("abc")
    r = submit(client, auth_headers(), qs.id, "ab")
    assert r.status_code == 400
    err = r.json()["error"]
    assert err["type"] == "invalid_submission"
    assert err["details"] == {"expected": 3, "received": 2}

    r = client.get(f"{API}/quizzes/submissions", headers=auth_headers())
    assert r.json()["total"] == 0


def test_empty_set_and_missing_set(client, make_set, auth_headers):
    empty = make_set("")
    r = submit(client, auth_headers(), empty.id, "")
    assert r.status_code == 400 and r.json()["error"]["type"] == "empty_question_set"

    r = submit(client, auth_headers(), 9999, "a")
    assert r.status_code == 404 and r.json()["error"]["type"] == "set_not_found"


def test_result_without_submissions(client, auth_headers):
    r = client.get(f"{API}/quizzes/result", headers=auth_headers(user_id=500))
    assert r.status_code == 404
    assert r.json()["error"]["type"] == "submission_not_found"


def test_answer_must_be_single_character(client, make_set, auth_headers):
    qs = make_set("a")
    r = client.post(f"{API}/quizzes/submit/{qs.id}", headers=auth_headers(), json={"answers": [{"number": 1, "answer": "ab"}]})
    assert r.status_code == 422
    assert r.json()["error"]["type"] == "validation_error"


def test_auth_required(client, make_set):
    qs = make_set("a")
    r = submit(client, {}, qs.id, "a")
    assert r.status_code in (401, 403)
    r = submit(client, {"Authorization": "Bearer not-a-token"}, qs.id, "a")
    assert r.status_code == 401


def test_admin_routes(client, make_set, auth_headers, fake_redis):
    qs = make_set("ab")
    submit(client, auth_headers(user_id=1), qs.id, "ab")
    submit(client, auth_headers(user_id=2), qs.id, "aa")

    r = client.get(f"{API}/admin/submissions", headers=auth_headers())
    assert r.status_code == 403

    admin = auth_headers(user_id=99, roles=("admin",))
    r = client.get(f"{API}/admin/submissions", params={"user_id": 2}, headers=admin)
    assert r.status_code == 200
    assert [row["user_id"] for row in r.json()["data"]] == [2]

    assert any("quiz:answer_key" in k for k in fake_redis.data)
    r = client.post(f"{API}/admin/sets/{qs.id}/invalidate", headers=admin)
    assert r.status_code == 200
    assert not any("quiz:answer_key" in k for k in fake_redis.data)


def test_store_failure_envelope(client, make_set, auth_headers, monkeypatch):
    qs = make_set("ab")

    def failing_commit(self):
        raise OperationalError("COMMIT", {}, Exception("server closed the connection"))

    monkeypatch.setattr(Session, "commit", failing_commit)
    r = submit(client, auth_headers(), qs.id, "ab")
    assert r.status_code == 503
    err = r.json()["error"]
    assert err["type"] == "store_unavailable"
    assert err["status_code"] == 503
    monkeypatch.undo()

    r = client.get(f"{API}/quizzes/submissions", headers=auth_headers())
    assert r.json()["total"] == 0


def test_non_quiz_set_is_not_found(client, make_set, auth_headers):
    qs = make_set("ab", is_quiz=False)
    r = submit(client, auth_headers(), qs.id, "ab")
    assert r.status_code == 404 and r.json()["error"]["type"] == "set_not_found"

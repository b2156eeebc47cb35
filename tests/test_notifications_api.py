from conftest import auth_headers, post_job, register


def _employer_with_notifications(client, mailer, count=2):
    emp_token, _ = register(client, mailer, email="emp@example.com", role="employer")
    job = post_job(client, emp_token)
    for i in range(count):
        token, _ = register(client, mailer, email=f"s{i}@example.com")
        r = client.post(f"/jobs/{job['id']}/apply", headers=auth_headers(token))
        assert r.status_code == 200, r.text
    return emp_token


def test_notifications_newest_first(client, mailer):
    emp_token = _employer_with_notifications(client, mailer, count=2)
    notes = client.get("/notifications", headers=auth_headers(emp_token)).json()
    assert len(notes) == 2
    assert all(n["read"] is False for n in notes)
    assert notes[0]["created_at"] >= notes[1]["created_at"]


def test_mark_one_read_is_scoped_to_owner(client, mailer):
    emp_token = _employer_with_notifications(client, mailer, count=1)
    note_id = client.get("/notifications", headers=auth_headers(emp_token)).json()[0]["id"]

    stranger_token, _ = register(client, mailer, email="stranger@example.com")
    r = client.put(f"/notifications/{note_id}/read", headers=auth_headers(stranger_token))
    assert r.status_code == 404

    for _ in range(2):
        r = client.put(f"/notifications/{note_id}/read", headers=auth_headers(emp_token))
        assert r.status_code == 200, r.text

    assert client.get("/notifications", headers=auth_headers(emp_token)).json()[0]["read"] is True


def test_mark_read_invalid_id(client, mailer):
    token, _ = register(client, mailer, email="someone@example.com")
    r = client.put("/notifications/xyz/read", headers=auth_headers(token))
    assert r.status_code == 400


def test_mark_all_read_is_idempotent(client, mailer):
    emp_token = _employer_with_notifications(client, mailer, count=3)

    r = client.put("/notifications/mark-all-read", headers=auth_headers(emp_token))
    assert r.status_code == 200, r.text
    assert r.json()["updated"] == 3

    r = client.put("/notifications/mark-all-read", headers=auth_headers(emp_token))
    assert r.status_code == 200, r.text
    assert r.json()["updated"] == 0

    notes = client.get("/notifications", headers=auth_headers(emp_token)).json()
    assert len(notes) == 3
    assert all(n["read"] for n in notes)


def test_notifications_require_token(client):
    assert client.get("/notifications").status_code == 401

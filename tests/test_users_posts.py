import uuid

from models import storage
from models.post import Post
from models.post_like import PostLike
from models.user import User


def test_register_user(client):
    resp = client.post(
        "/users", json={"username": "alice", "email": "Alice@Example.com", "password": "password123"}
    )
    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["email"] == "alice@example.com"
    assert "password" not in data and "password_hash" not in data

    login = client.post("/auth/login", json={"email": "alice@example.com", "password": "password123"})
    assert login.status_code == 200


def test_register_duplicate_email_conflicts(client, make_user):
    make_user()
    resp = client.post(
        "/users", json={"username": "other", "email": "ALICE@example.com", "password": "password123"}
    )
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "CONFLICT"


def test_register_validation(client):
    resp = client.post("/users", json={"username": "x", "email": "not-an-email", "password": "short"})
    assert resp.status_code == 400
    details = resp.get_json()["details"]
    assert "email" in details and "password" in details


def test_get_user(client, make_user):
    user = make_user()
    assert client.get(f"/users/{user.id}").get_json()["data"]["username"] == "alice"
    assert client.get(f"/users/{uuid.uuid4()}").status_code == 404
    assert client.get("/users/123").status_code == 400


def test_create_and_get_post(client, make_user, auth_headers):
    user = make_user()
    resp = client.post("/post", json={"content": "first!"}, headers=auth_headers())
    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["user_id"] == user.id
    assert data["like_count"] == 0

    fetched = client.get(f"/post/{data['id']}")
    assert fetched.get_json()["data"]["content"] == "first!"
    assert client.post("/post", json={}, headers=auth_headers()).status_code == 400


def test_delete_post_cascades_likes(app, client, make_user, make_post, auth_headers):
    alice = make_user()
    make_user(email="bob@example.com", username="bob")
    post = make_post(alice)
    client.post(f"/post/{post.id}/like", headers=auth_headers("bob@example.com"))

    forbidden = client.delete(f"/post/{post.id}", headers=auth_headers("bob@example.com"))
    assert forbidden.status_code == 403

    assert client.delete(f"/post/{post.id}", headers=auth_headers()).status_code == 204
    assert client.get(f"/post/{post.id}").status_code == 404
    with app.app_context():
        assert storage.get_session().query(PostLike).count() == 0


def test_delete_user_cascades(app, client, make_user, make_post, auth_headers):
    alice = make_user()
    bob = make_user(email="bob@example.com", username="bob")
    bobs_post = make_post(bob, content="bob's")
    alices_post = make_post(alice, content="alice's")

    alice_headers = auth_headers()
    bob_headers = auth_headers("bob@example.com")
    client.post(f"/post/{bobs_post.id}/like", headers=alice_headers)
    client.post(f"/post/{bobs_post.id}/like", headers=bob_headers)
    client.post(f"/post/{alices_post.id}/like", headers=bob_headers)

    assert client.delete(f"/users/{alice.id}", headers=bob_headers).status_code == 403
    assert client.delete(f"/users/{alice.id}", headers=alice_headers).status_code == 204

    counts = client.get(f"/post/{bobs_post.id}/likes/count").get_json()
    assert counts == {"like_count": 1, "actual_count": 1}
    assert client.get(f"/post/{alices_post.id}").status_code == 404
    with app.app_context():
        assert storage.get(User, alice.id) is None
        assert storage.get_session().query(Post).count() == 1
        assert storage.get_session().query(PostLike).count() == 1


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "ok"

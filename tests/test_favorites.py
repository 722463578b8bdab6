from uuid import uuid4

from fastapi.testclient import TestClient


def test_favorites_scenario(client: TestClient, make_user, published_recipe):
    recipe, _, _ = published_recipe
    fan, headers = make_user("fan")
    base = f"/users/{fan.id}/favorites"

    response = client.put(f"{base}/{recipe['id']}", headers=headers)
    assert response.status_code == 200
    assert response.json() == {"favoritesCount": 1}

    listed = client.get(base, headers=headers).json()
    assert [r["id"] for r in listed] == [recipe["id"]]
    assert client.get(f"{base}/count", headers=headers).json() == {"favoritesCount": 1}

    response = client.delete(f"{base}/{recipe['id']}", headers=headers)
    assert response.status_code == 200
    assert response.json() == {"favoritesCount": 0}
    assert client.get(base, headers=headers).json() == []


def test_adding_twice_conflicts(client: TestClient, make_user, published_recipe):
    recipe, _, _ = published_recipe
    fan, headers = make_user("fan")
    url = f"/users/{fan.id}/favorites/{recipe['id']}"

    client.put(url, headers=headers)
    response = client.put(url, headers=headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Recipe is already in favorites"
    assert client.get(f"/users/{fan.id}/favorites/count", headers=headers).json() == {"favoritesCount": 1}


def test_removing_absent_favorite(client: TestClient, make_user, published_recipe):
    recipe, _, _ = published_recipe
    fan, headers = make_user("fan")

    response = client.delete(f"/users/{fan.id}/favorites/{recipe['id']}", headers=headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "Recipe in favorites not found"


def test_unpublished_recipe_cannot_be_favorited(client: TestClient, make_user, create_recipe):
    _, author_headers = make_user("author")
    fan, headers = make_user("fan")
    recipe = create_recipe(author_headers)

    response = client.put(f"/users/{fan.id}/favorites/{recipe['id']}", headers=headers)
    assert response.status_code == 404


def test_missing_recipe_cannot_be_favorited(client: TestClient, make_user):
    fan, headers = make_user("fan")
    response = client.put(f"/users/{fan.id}/favorites/{uuid4()}", headers=headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "Recipe not found"


def test_other_users_favorites_are_private(client: TestClient, make_user, published_recipe):
    recipe, _, _ = published_recipe
    fan, fan_headers = make_user("fan")
    _, snoop_headers = make_user("snoop")
    base = f"/users/{fan.id}/favorites"

    assert client.get(base, headers=snoop_headers).status_code == 403
    assert client.get(f"{base}/count", headers=snoop_headers).status_code == 403
    assert client.put(f"{base}/{recipe['id']}", headers=snoop_headers).status_code == 403
    assert client.delete(f"{base}/{recipe['id']}", headers=snoop_headers).status_code == 403


def test_admin_manages_any_users_favorites(client: TestClient, make_user, published_recipe):
    recipe, _, admin_headers = published_recipe
    fan, _ = make_user("fan")

    response = client.put(f"/users/{fan.id}/favorites/{recipe['id']}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {"favoritesCount": 1}


def test_admin_gets_404_for_unknown_user(client: TestClient, published_recipe):
    _, _, admin_headers = published_recipe
    response = client.get(f"/users/{uuid4()}/favorites", headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "User not found"


def test_profile_reflects_favorites_and_recipes(client: TestClient, make_user, published_recipe, create_recipe):
    recipe, _, _ = published_recipe
    fan, headers = make_user("fan")
    create_recipe(headers, title="Fan soup")
    client.put(f"/users/{fan.id}/favorites/{recipe['id']}", headers=headers)

    response = client.get(f"/users/{fan.id}", headers=headers)
    assert response.status_code == 200
    profile = response.json()
    assert profile["username"] == "fan"
    assert profile["isAdmin"] is False
    assert profile["recipeCount"] == 1
    assert profile["favoritesCount"] == 1
    assert profile["favorites"] == [recipe["id"]]
    assert "hashedPassword" not in profile


def test_profile_of_other_user_is_forbidden(client: TestClient, make_user):
    user, _ = make_user("private")
    _, other_headers = make_user("other")
    assert client.get(f"/users/{user.id}", headers=other_headers).status_code == 403


def test_favorite_sent_back_to_moderation_is_hidden(client: TestClient, make_user, published_recipe, recipe_payload):
    recipe, author_headers, admin_headers = published_recipe
    fan, headers = make_user("fan")
    base = f"/users/{fan.id}/favorites"
    client.put(f"{base}/{recipe['id']}", headers=headers)

    edited = client.put(
        f"/recipes/{recipe['id']}", json=recipe_payload(title="Unmoderated"), headers=author_headers
    )
    assert edited.json()["status"] == "pending"

    assert client.get(f"/recipes/{recipe['id']}", headers=headers).status_code == 403
    assert client.get(base, headers=headers).json() == []
    # still counted, and back in the list once approved again
    assert client.get(f"{base}/count", headers=headers).json() == {"favoritesCount": 1}
    client.put(f"/recipes/{recipe['id']}/approve", headers=admin_headers)
    assert [r["title"] for r in client.get(base, headers=headers).json()] == ["Unmoderated"]


def test_admin_sees_pending_favorites(client: TestClient, make_user, published_recipe, recipe_payload):
    recipe, author_headers, admin_headers = published_recipe
    fan, headers = make_user("fan")
    client.put(f"/users/{fan.id}/favorites/{recipe['id']}", headers=headers)
    client.put(f"/recipes/{recipe['id']}", json=recipe_payload(), headers=author_headers)

    listed = client.get(f"/users/{fan.id}/favorites", headers=admin_headers).json()
    assert [r["status"] for r in listed] == ["pending"]

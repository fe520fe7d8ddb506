from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncSession

from conftest import bearer, post_recipe, register
from core.config import settings
from services.storage_service import storage_service

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


async def test_create_search_and_like_scenario(client):
    alice = await register(client)
    bob = await register(client, "Bob", "bob@example.com")

    created = await post_recipe(client, alice["token"], cuisine="American", cookingTime="20")
    assert created.status_code == 201
    body = created.json()
    assert body["message"] == "Recipe created successfully 🎉"
    recipe = body["recipe"]
    assert recipe["likes"] == 0
    assert recipe["likedBy"] == []
    assert recipe["cookingTime"] == 20
    assert recipe["owner"]["name"] == "Alice"

    found = (await client.get("/api/recipes", params={"search": "pancakes"})).json()
    assert found["total"] == 1
    assert found["page"] == 1
    assert found["totalPages"] == 1
    assert found["recipes"][0]["id"] == recipe["id"]

    missed = (await client.get("/api/recipes", params={"search": "cake"})).json()
    assert missed == {"recipes": [], "total": 0, "page": 1, "totalPages": 0}

    liked = await client.post(f"/api/recipes/{recipe['id']}/like", headers=bearer(bob["token"]))
    assert liked.json() == {"message": "Recipe liked", "liked": True, "likes": 1}

    detail = (await client.get(f"/api/recipes/{recipe['id']}")).json()
    assert detail["likedBy"] == [bob["id"]]

    unliked = await client.post(f"/api/recipes/{recipe['id']}/like", headers=bearer(bob["token"]))
    assert unliked.json() == {"message": "Like removed", "liked": False, "likes": 0}


async def test_mutations_require_a_token(client):
    response = await client.post("/api/recipes", data={"title": "T", "ingredients": "x", "steps": "y"})
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"
    assert response.json() == {"error": "unauthorized", "message": "Not authorized, no token"}

    response = await client.post("/api/recipes/1/like", headers=bearer("garbage"))
    assert response.status_code == 401
    assert response.json()["message"] == "Not authorized, token failed"


async def test_missing_required_fields(client):
    alice = await register(client)

    response = await post_recipe(client, alice["token"], title="")

    assert response.status_code == 400
    assert response.json() == {
        "error": "validation_error",
        "message": "Title, ingredients, and steps are required",
    }


async def test_update_and_delete_are_owner_only(client):
    alice = await register(client)
    bob = await register(client, "Bob", "bob@example.com")
    recipe = (await post_recipe(client, alice["token"])).json()["recipe"]
    url = f"/api/recipes/{recipe['id']}"

    forbidden = await client.put(url, json={"title": "Mine now"}, headers=bearer(bob["token"]))
    assert forbidden.status_code == 403
    assert forbidden.json()["error"] == "forbidden"
    assert (await client.delete(url, headers=bearer(bob["token"]))).status_code == 403

    updated = await client.put(
        url, json={"dietType": "Vegetarian", "cookingTime": 25, "likes": 500}, headers=bearer(alice["token"])
    )
    assert updated.status_code == 200
    assert updated.json()["message"] == "Recipe updated successfully"
    assert updated.json()["recipe"]["dietType"] == "Vegetarian"
    assert updated.json()["recipe"]["cookingTime"] == 25
    assert updated.json()["recipe"]["likes"] == 0

    deleted = await client.delete(url, headers=bearer(alice["token"]))
    assert deleted.json() == {"message": "Recipe deleted successfully"}
    assert (await client.get(url)).status_code == 404


async def test_not_found_and_malformed_ids(client):
    alice = await register(client)

    missing = await client.get("/api/recipes/4242")
    assert missing.status_code == 404
    assert missing.json() == {"error": "not_found", "message": "Recipe not found"}

    liked = await client.post("/api/recipes/4242/like", headers=bearer(alice["token"]))
    assert liked.status_code == 404

    malformed = await client.get("/api/recipes/not-an-id")
    assert malformed.status_code == 400
    assert malformed.json()["error"] == "validation_error"


async def test_image_upload_is_stored_and_cleaned_up(client):
    alice = await register(client)
    files = [
        ("images", ("first photo.png", PNG, "image/png")),
        ("images", ("second.png", PNG, "image/png")),
    ]

    response = await post_recipe(client, alice["token"], files=files)

    assert response.status_code == 201
    images = response.json()["recipe"]["images"]
    assert len(images) == 2
    assert all(path.startswith("uploads/recipes/") for path in images)
    assert images[0].endswith("-first-photo.png")

    stored = [Path(settings.UPLOAD_DIR) / path[len("uploads/"):] for path in images]
    assert all(path.read_bytes() == PNG for path in stored)

    recipe_id = response.json()["recipe"]["id"]
    await client.delete(f"/api/recipes/{recipe_id}", headers=bearer(alice["token"]))
    assert not any(path.exists() for path in stored)


async def test_image_upload_limits(client):
    alice = await register(client)

    too_many = [("images", (f"{i}.png", PNG, "image/png")) for i in range(settings.MAX_RECIPE_IMAGES + 1)]
    response = await post_recipe(client, alice["token"], files=too_many)
    assert response.status_code == 400
    assert str(settings.MAX_RECIPE_IMAGES) in response.json()["message"]

    wrong_type = [("images", ("notes.txt", b"hello", "text/plain"))]
    response = await post_recipe(client, alice["token"], files=wrong_type)
    assert response.status_code == 400
    assert "Unsupported image type" in response.json()["message"]

    assert (await client.get("/api/recipes")).json()["total"] == 0


async def test_personal_listings(client):
    alice = await register(client)
    bob = await register(client, "Bob", "bob@example.com")
    mine = (await post_recipe(client, alice["token"], "Mine")).json()["recipe"]
    await post_recipe(client, bob["token"], "Bob's")

    await client.post(f"/api/recipes/{mine['id']}/like", headers=bearer(bob["token"]))
    favorited = await client.post(f"/api/recipes/{mine['id']}/favorite", headers=bearer(bob["token"]))
    assert favorited.json() == {"message": "Recipe added to favorites", "favorited": True}

    my = (await client.get("/api/recipes/my", headers=bearer(alice["token"]))).json()
    assert [r["title"] for r in my] == ["Mine"]

    favorites = (await client.get("/api/recipes/favorites", headers=bearer(bob["token"]))).json()
    assert [r["id"] for r in favorites] == [mine["id"]]
    assert (await client.get("/api/users/favorites", headers=bearer(bob["token"]))).json() == favorites

    liked = (await client.get("/api/recipes/liked", headers=bearer(bob["token"]))).json()
    assert [r["id"] for r in liked] == [mine["id"]]

    removed = await client.post(f"/api/recipes/{mine['id']}/favorite", headers=bearer(bob["token"]))
    assert removed.json() == {"message": "Recipe removed from favorites", "favorited": False}


async def test_catalog_query_parameters(client):
    alice = await register(client)
    await post_recipe(client, alice["token"], "Tofu Bowl", dietType="Vegan", cookingTime="15")
    await post_recipe(client, alice["token"], "Beef Stew", cuisine="Irish", cookingTime="120")

    vegan = (await client.get("/api/recipes", params={"dietType": "vegan"})).json()
    assert [r["title"] for r in vegan["recipes"]] == ["Tofu Bowl"]

    quick = (await client.get("/api/recipes", params={"maxTime": "30", "sort": "time"})).json()
    assert [r["title"] for r in quick["recipes"]] == ["Tofu Bowl"]

    paged = (await client.get("/api/recipes", params={"limit": "1", "page": "2", "sort": "oldest"})).json()
    assert paged["total"] == 2
    assert paged["totalPages"] == 2
    assert [r["title"] for r in paged["recipes"]] == ["Beef Stew"]

    lenient = await client.get("/api/recipes", params={"page": "x", "limit": "y", "maxTime": "z"})
    assert lenient.status_code == 200
    assert lenient.json()["total"] == 2


async def test_cannot_claim_another_users_image(client):
    alice = await register(client)
    mallory = await register(client, "Mallory", "mallory@example.com")
    alices = (
        await post_recipe(client, alice["token"], files=[("images", ("dish.png", PNG, "image/png"))])
    ).json()["recipe"]
    alice_image = alices["images"][0]
    mine = (await post_recipe(client, mallory["token"], "Decoy")).json()["recipe"]

    claimed = await client.put(
        f"/api/recipes/{mine['id']}", json={"images": [alice_image]}, headers=bearer(mallory["token"])
    )
    assert claimed.status_code == 400
    await client.delete(f"/api/recipes/{mine['id']}", headers=bearer(mallory["token"]))

    assert (Path(settings.UPLOAD_DIR) / alice_image[len("uploads/"):]).exists()
    assert (await client.get(f"/api/recipes/{alices['id']}")).json()["images"] == [alice_image]


async def test_update_dropping_an_image_removes_the_file(client):
    alice = await register(client)
    files = [("images", ("a.png", PNG, "image/png")), ("images", ("b.png", PNG, "image/png"))]
    recipe = (await post_recipe(client, alice["token"], files=files)).json()["recipe"]
    kept, dropped = recipe["images"]

    response = await client.put(
        f"/api/recipes/{recipe['id']}", json={"images": [kept]}, headers=bearer(alice["token"])
    )

    assert response.json()["recipe"]["images"] == [kept]
    assert (Path(settings.UPLOAD_DIR) / kept[len("uploads/"):]).exists()
    assert not (Path(settings.UPLOAD_DIR) / dropped[len("uploads/"):]).exists()


async def test_files_are_removed_after_the_commit(client, monkeypatch):
    alice = await register(client)
    recipe = (await post_recipe(client, alice["token"])).json()["recipe"]
    calls = []
    original_commit = AsyncSession.commit

    async def recording_commit(self):
        calls.append("commit")
        await original_commit(self)

    monkeypatch.setattr(AsyncSession, "commit", recording_commit)
    monkeypatch.setattr(storage_service, "delete_files", lambda paths: calls.append("delete_files"))

    await client.delete(f"/api/recipes/{recipe['id']}", headers=bearer(alice["token"]))

    assert "delete_files" in calls
    assert calls.index("commit") < calls.index("delete_files")


async def test_huge_page_number_is_an_empty_page(client):
    alice = await register(client)
    await post_recipe(client, alice["token"])

    response = await client.get("/api/recipes", params={"page": "1e20", "limit": "1e20"})

    assert response.status_code == 200
    assert response.json()["recipes"] == []
    assert response.json()["total"] == 1

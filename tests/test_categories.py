import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.exc import OperationalError

from app import build_services, create_app
from config import Config
from errors import ConflictError, StoreError, ValidationError

TEST_SETTINGS = {
    "TESTING": True,
    "DB_URL": "sqlite://",
    "JWT_SECRET_KEY": "test-secret-key-for-signing-tokens-0001",
    "PASSWORD_HASH_METHOD": "pbkdf2:sha256:1000",
}


@pytest.fixture
def services():
    services = build_services(Config.as_dict(TEST_SETTINGS))
    services.store.create_schema()
    yield services
    services.store.dispose()


@pytest.fixture
def user_id(services):
    return services.auth.register("alice", "alice@example.com", "secret")


def add_item(services, user_id, nama, kategori, **extra):
    fields = {"nama": nama, "kategori": kategori}
    fields.update(extra)
    return services.inventory.add(fields, created_by=user_id)


def labels(services):
    return {item.nama: item.kategori for item in services.inventory.list()}


def test_list_is_sorted(services):
    for name in ("Printer", "Laptop", "Monitor"):
        services.categories.add(name)

    assert services.categories.list() == ["Laptop", "Monitor", "Printer"]


def test_add_requires_name(services):
    with pytest.raises(ValidationError):
        services.categories.add("")


def test_add_duplicate_conflicts_case_sensitively(services):
    services.categories.add("Laptop")

    with pytest.raises(ConflictError):
        services.categories.add("Laptop")

    services.categories.add("laptop")
    assert services.categories.list() == ["Laptop", "laptop"]


def test_rename_relabels_items(services, user_id):
    services.categories.add("A")
    services.categories.add("C")
    add_item(services, user_id, "one", "A")
    add_item(services, user_id, "two", "A")
    add_item(services, user_id, "three", "C")

    result = services.categories.rename("A", "B")

    assert result.categories_renamed == 1
    assert result.items_relabeled == 2
    assert services.categories.list() == ["B", "C"]
    assert labels(services) == {"one": "B", "two": "B", "three": "C"}


def test_rename_trims_new_name(services):
    services.categories.add("A")

    services.categories.rename("A", "  B  ")

    assert services.categories.list() == ["B"]


@pytest.mark.parametrize("new_name", ["", "   ", None])
def test_rename_rejects_empty_new_name(services, new_name):
    services.categories.add("A")

    with pytest.raises(ValidationError):
        services.categories.rename("A", new_name)

    assert services.categories.list() == ["A"]


def test_rename_to_existing_name_conflicts_and_changes_nothing(services, user_id):
    services.categories.add("A")
    services.categories.add("B")
    add_item(services, user_id, "one", "A")

    with pytest.raises(ConflictError):
        services.categories.rename("A", "B")

    assert services.categories.list() == ["A", "B"]
    assert labels(services) == {"one": "A"}


def test_rename_rolls_back_when_item_relabel_fails(services, user_id):
    services.categories.add("A")
    add_item(services, user_id, "one", "A")
    add_item(services, user_id, "two", "A")

    def fail_item_relabel(conn, cursor, statement, parameters, context, executemany):
        if statement.startswith("UPDATE inventory"):
            raise OperationalError(statement, parameters, Exception("disk I/O error"))

    engine = services.store.engine
    event.listen(engine, "before_cursor_execute", fail_item_relabel)
    try:
        with pytest.raises(StoreError):
            services.categories.rename("A", "B")
    finally:
        event.remove(engine, "before_cursor_execute", fail_item_relabel)

    assert services.categories.list() == ["A"]
    assert labels(services) == {"one": "A", "two": "A"}


def test_rename_unregistered_name_still_relabels_items(services, user_id):
    add_item(services, user_id, "one", "Ghost")

    result = services.categories.rename("Ghost", "Real")

    assert result.categories_renamed == 0
    assert labels(services) == {"one": "Real"}


def test_remove_leaves_item_labels_orphaned(services, user_id):
    services.categories.add("A")
    add_item(services, user_id, "one", "A")

    services.categories.remove("A")

    assert services.categories.list() == []
    assert labels(services) == {"one": "A"}


def test_remove_missing_name_is_noop(services):
    assert services.categories.remove("nope") == 0


@pytest.fixture
def client():
    app = create_app(TEST_SETTINGS)
    with TestClient(app) as client:
        client.post(
            "/api/auth/register",
            json={"username": "alice", "email": "alice@example.com", "password": "secret"},
        )
        token = client.post(
            "/api/auth/login", json={"username": "alice", "password": "secret"}
        ).json()["token"]
        client.headers.update({"Authorization": f"Bearer {token}"})
        yield client


def test_category_routes(client):
    assert client.post("/api/categories", json={"name": "Laptop"}).status_code == 200
    assert client.post("/api/categories", json={"name": "Kursi"}).status_code == 200

    duplicate = client.post("/api/categories", json={"name": "Laptop"})
    assert duplicate.status_code == 400
    assert duplicate.json()["message"] == "Category already exists"

    assert client.post("/api/categories", json={}).status_code == 400
    assert client.get("/api/categories").json() == ["Kursi", "Laptop"]


def test_rename_route_handles_encoded_names(client):
    client.post("/api/categories", json={"name": "Meja/Kursi"})
    client.post("/api/inventory", json={"nama": "Meja A", "kategori": "Meja/Kursi"})

    response = client.put("/api/categories/Meja%2FKursi", json={"newName": " Furnitur "})

    assert response.status_code == 200
    assert client.get("/api/categories").json() == ["Furnitur"]
    assert client.get("/api/inventory").json()[0]["kategori"] == "Furnitur"


def test_rename_route_requires_new_name(client):
    client.post("/api/categories", json={"name": "A"})

    response = client.put("/api/categories/A", json={"newName": "  "})

    assert response.status_code == 400
    assert response.json()["message"] == "New category name required"


def test_delete_route(client):
    client.post("/api/categories", json={"name": "Laptop Lama"})
    client.post("/api/inventory", json={"nama": "X", "kategori": "Laptop Lama"})

    response = client.delete("/api/categories/Laptop%20Lama")

    assert response.status_code == 200
    assert client.get("/api/categories").json() == []
    assert client.get("/api/inventory").json()[0]["kategori"] == "Laptop Lama"

from datetime import datetime, timedelta, timezone

import mongomock
import pytest
from pymongo.errors import AutoReconnect

import cart


def cart_rows(db, user, drone_id):
    return list(db[cart.CART].find({"user_id": user.id, "drone_id": drone_id}))


def test_add_then_increment_same_row(db, user):
    assert cart.add_to_cart(db, user, "drone-1", 2).success
    rows = cart_rows(db, user, "drone-1")
    assert len(rows) == 1
    assert rows[0]["quantity"] == 2

    assert cart.add_to_cart(db, user, "drone-1", 3).success
    rows = cart_rows(db, user, "drone-1")
    assert len(rows) == 1
    assert rows[0]["quantity"] == 5


def test_add_defaults_to_one(db, user):
    cart.add_to_cart(db, user, "drone-1")
    assert cart_rows(db, user, "drone-1")[0]["quantity"] == 1


def test_add_rejects_non_positive_quantity(db, user):
    result = cart.add_to_cart(db, user, "drone-1", 0)

    assert result.success is False
    assert cart_rows(db, user, "drone-1") == []


@pytest.mark.parametrize("call", [
    lambda db: cart.add_to_cart(db, None, "drone-1"),
    lambda db: cart.add_to_wishlist(db, None, "drone-1"),
    lambda db: cart.move_wishlist_to_cart(db, None, "abc"),
    lambda db: cart.get_cart_items(db, None),
    lambda db: cart.get_wishlist_items(db, None),
    lambda db: cart.is_drone_in_cart(db, None, "drone-1"),
    lambda db: cart.is_drone_in_wishlist(db, None, "drone-1"),
])
def test_signed_out_calls_fail(db, call):
    result = call(db)
    assert result.error == cart.NOT_AUTHENTICATED


def test_signed_out_membership_is_failure_not_false(db):
    result = cart.is_drone_in_cart(db, None, "drone-1")
    assert result.in_cart is False
    assert result.error is not None


def test_update_to_zero_matches_remove(db, user):
    cart.add_to_cart(db, user, "drone-1", 2)
    cart.add_to_cart(db, user, "drone-2", 2)
    first = str(cart_rows(db, user, "drone-1")[0]["_id"])
    second = str(cart_rows(db, user, "drone-2")[0]["_id"])

    assert cart.update_cart_quantity(db, first, 0).success
    assert cart.remove_from_cart(db, second).success

    assert cart_rows(db, user, "drone-1") == []
    assert cart_rows(db, user, "drone-2") == []


def test_update_quantity(db, user):
    cart.add_to_cart(db, user, "drone-1", 2)
    item_id = str(cart_rows(db, user, "drone-1")[0]["_id"])

    assert cart.update_cart_quantity(db, item_id, 7, user).success
    assert cart_rows(db, user, "drone-1")[0]["quantity"] == 7


def test_owner_scoped_remove_ignores_other_users_rows(db, user):
    cart.add_to_cart(db, user, "drone-1")
    item_id = str(cart_rows(db, user, "drone-1")[0]["_id"])
    intruder = user.model_copy(update={"id": "user-2"})

    assert cart.remove_from_cart(db, item_id, intruder).success
    assert len(cart_rows(db, user, "drone-1")) == 1


def test_cart_items_newest_first_with_drone(db, user, drones):
    old = datetime(2024, 1, 1, tzinfo=timezone.utc)
    db[cart.CART].insert_many([
        {"user_id": user.id, "drone_id": drones["sentinel"], "quantity": 1, "created_at": old},
        {"user_id": user.id, "drone_id": drones["relay"], "quantity": 2,
         "created_at": old + timedelta(days=1)},
        {"user_id": "someone-else", "drone_id": drones["relay"], "quantity": 9, "created_at": old},
    ])

    result = cart.get_cart_items(db, user)

    assert result.error is None
    assert [item["drone"]["name"] for item in result.data] == ["Relay R2", "Sentinel X4"]
    assert result.data[0]["drone"] == {
        "id": drones["relay"],
        "name": "Relay R2",
        "image_url": None,
        "price": 2199.0,
        "in_stock": True,
    }


def test_cart_read_failure_is_downgraded(db, user, monkeypatch):
    def unreachable(self, *args, **kwargs):
        raise AutoReconnect("lost connection")

    monkeypatch.setattr(mongomock.Collection, "find", unreachable)
    result = cart.get_cart_items(db, user)

    assert result.data == []
    assert result.error == "lost connection"


def test_cart_write_failure_is_downgraded(db, user, monkeypatch):
    def unreachable(self, *args, **kwargs):
        raise AutoReconnect("lost connection")

    monkeypatch.setattr(mongomock.Collection, "update_one", unreachable)
    result = cart.add_to_cart(db, user, "drone-1")

    assert result.success is False
    assert result.error == "lost connection"


def test_wishlist_rejects_duplicates(db, user):
    assert cart.add_to_wishlist(db, user, "drone-1").success

    again = cart.add_to_wishlist(db, user, "drone-1")

    assert again.success is False
    assert again.error == cart.ALREADY_IN_WISHLIST
    assert db[cart.WISHLIST].count_documents({"user_id": user.id, "drone_id": "drone-1"}) == 1


def test_wishlist_items_and_membership(db, user, drones):
    cart.add_to_wishlist(db, user, drones["atlas"])

    items = cart.get_wishlist_items(db, user)
    assert [item["drone"]["name"] for item in items.data] == ["Atlas Heavy"]

    assert cart.is_drone_in_wishlist(db, user, drones["atlas"]).in_wishlist is True
    assert cart.is_drone_in_wishlist(db, user, drones["relay"]).in_wishlist is False

    assert cart.remove_from_wishlist(db, items.data[0]["id"]).success
    assert cart.is_drone_in_wishlist(db, user, drones["atlas"]).in_wishlist is False


def test_move_wishlist_to_cart(db, user):
    cart.add_to_cart(db, user, "drone-1", 1)
    cart.add_to_wishlist(db, user, "drone-1")
    wishlist_id = str(db[cart.WISHLIST].find_one({"drone_id": "drone-1"})["_id"])

    result = cart.move_wishlist_to_cart(db, user, wishlist_id, 2)

    assert result.success
    rows = cart_rows(db, user, "drone-1")
    assert len(rows) == 1
    assert rows[0]["quantity"] == 3
    assert db[cart.WISHLIST].count_documents({"user_id": user.id}) == 0
    assert cart.is_drone_in_cart(db, user, "drone-1").in_cart is True


def test_move_unknown_wishlist_item(db, user):
    result = cart.move_wishlist_to_cart(db, user, "0" * 24)

    assert result.success is False
    assert result.error == cart.WISHLIST_ITEM_NOT_FOUND


def test_move_leaves_wishlist_row_when_removal_fails(db, user, monkeypatch):
    cart.add_to_wishlist(db, user, "drone-1")
    wishlist_id = str(db[cart.WISHLIST].find_one({"drone_id": "drone-1"})["_id"])

    def unreachable(self, *args, **kwargs):
        raise AutoReconnect("lost connection")

    monkeypatch.setattr(mongomock.Collection, "delete_one", unreachable)
    result = cart.move_wishlist_to_cart(db, user, wishlist_id)

    assert result.success is False
    assert len(cart_rows(db, user, "drone-1")) == 1
    assert db[cart.WISHLIST].count_documents({"user_id": user.id}) == 1

from storefront.services.cart_sync import CartSynchronizer


def test_guest_lines_move_to_user(gateway, guest_repo, guest_session, user_session, server_lines):
    guest_repo.write(guest_session.session_id, [
        {"product_id": "P1", "quantity": 2},
        {"product_id": "P2", "quantity": 1},
    ])

    synced = CartSynchronizer(gateway, guest_repo).sync(user_session)

    assert synced == 2
    assert server_lines() == {"P1": 2, "P2": 1}
    assert not guest_repo.exists(guest_session.session_id)


def test_guest_quantity_replaces_server_quantity(gateway, guest_repo, user_session, server_lines):
    gateway.upsert("cart_items", {"user_id": user_session.user_id, "product_id": "P1", "quantity": 5},
                   on_conflict=("user_id", "product_id"))
    guest_repo.write(user_session.session_id, [{"product_id": "P1", "quantity": 1}])

    CartSynchronizer(gateway, guest_repo).sync(user_session)

    assert server_lines() == {"P1": 1}


def test_failed_lines_are_skipped(gateway, guest_repo, user_session, server_lines):
    guest_repo.write(user_session.session_id, [{"product_id": "P1", "quantity": 2}])
    gateway.fail("upsert", "cart_items")

    synced = CartSynchronizer(gateway, guest_repo).sync(user_session)

    assert synced == 0
    assert server_lines() == {}


def test_without_guest_cart_nothing_is_written(gateway, guest_repo, user_session):
    synced = CartSynchronizer(gateway, guest_repo).sync(user_session)

    assert synced == 0
    assert ("upsert", "cart_items") not in gateway.calls


def test_guest_session_is_not_synced(gateway, guest_repo, guest_session):
    guest_repo.write(guest_session.session_id, [{"product_id": "P1", "quantity": 2}])

    assert CartSynchronizer(gateway, guest_repo).sync(guest_session) == 0
    assert guest_repo.exists(guest_session.session_id)


def test_cart_switches_to_user(gateway, guest_repo, guest_session, user_session, make_cart, add_product):
    add_product("P1", 2500)
    cart = make_cart(guest_session)
    cart.add("P1", 2)

    CartSynchronizer(gateway, guest_repo).sync(user_session, cart=cart)

    assert cart.session.user_id == user_session.user_id
    assert [(line.product_id, line.quantity) for line in cart.lines] == [("P1", 2)]
    assert cart.lines[0].user_id == user_session.user_id


def test_redis_outage_does_not_raise(gateway, guest_repo, redis_client, user_session):
    redis_client.down = True

    assert CartSynchronizer(gateway, guest_repo).sync(user_session) == 0

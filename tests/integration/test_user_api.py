"""
Tests for signed-in user routes.
"""

from shopcart.clients import ClerkUser

SANITY_USER = {"_id": "sanity-jane", "clerkUserId": "user_customer", "email": "jane@shop.test"}


def test_points_stats(client, sanity):
    sanity.fetch.return_value = {"_id": "sanity-jane", "rewardPoints": 10, "totalOrders": 2}

    body = client.get("/api/user/points").json()

    assert body == {"success": True, "stats": {"_id": "sanity-jane", "rewardPoints": 10, "totalOrders": 2}}


def test_points_stats_unknown_user(client):
    response = client.get("/api/user/points")

    assert response.status_code == 404
    assert response.json() == {"error": "User not found"}


def test_add_order_points(client, sanity):
    sanity.fetch.return_value = {
        "_id": "sanity-jane",
        "rewardPoints": 10,
        "loyaltyPoints": 0,
        "totalSpent": 100,
        "completedOrders": 4,
    }

    body = client.post("/api/user/points", json={"orderTotal": 3500, "orderId": "order-1"}).json()

    assert body["pointsEarned"] == {"rewardPoints": 5, "loyaltyPoints": 100}
    assert body["messages"] == [
        "Earned 5 reward points for order over $3000!",
        "Earned 100 loyalty points for completing 5 orders!",
    ]
    changes = sanity.patch.call_args.kwargs["set"]
    assert changes["rewardPoints"] == 15
    assert changes["loyaltyPoints"] == 100
    assert changes["totalSpent"] == 3600


def test_add_order_points_requires_fields(client, sanity):
    response = client.post("/api/user/points", json={"orderId": "order-1"})

    assert response.status_code == 400
    assert response.json()["error"] == "Order total and order ID are required"
    sanity.fetch.assert_not_called()


def test_add_order_points_rejects_infinite_total(client, sanity):
    response = client.post(
        "/api/user/points",
        content='{"orderTotal": 1e309, "orderId": "order-1"}',
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 422
    sanity.patch.assert_not_called()


def test_update_settings(client, sanity):
    sanity.fetch.return_value = dict(SANITY_USER)

    response = client.patch("/api/user/settings", json={"preferences": {"newsletter": True}})

    assert response.json()["success"] is True
    assert sanity.patch.call_args.kwargs["set"]["preferences"] == {"newsletter": True}


def test_notifications_delegate_to_service(client, notifications):
    assert client.get("/api/user/notifications").json() == {"notifications": [], "unreadCount": 0}
    client.patch("/api/user/notifications/n-1/read")

    notifications.list_notifications.assert_awaited_once_with("user_customer")
    notifications.mark_as_read.assert_awaited_once_with("user_customer", "n-1")


def test_user_order_count(client, sanity):
    sanity.fetch.return_value = 7

    assert client.get("/api/user/orders/count").json() == {"count": 7}


def test_business_apply(client, sanity):
    sanity.fetch.return_value = {**SANITY_USER, "isActive": True, "businessStatus": "none"}

    response = client.post("/api/user/business-apply", json={"email": "jane@shop.test"})

    assert response.json()["success"] is True
    assert sanity.patch.call_args.kwargs["set"]["businessStatus"] == "pending"


def test_business_apply_guards(client, sanity):
    url = "/api/user/business-apply"

    assert client.post(url, json={}).json()["error"] == "Email is required"

    sanity.fetch.return_value = None
    response = client.post(url, json={"email": "jane@shop.test"})
    assert response.status_code == 404
    assert response.json()["error"] == "Please register for premium services first"

    sanity.fetch.return_value = {**SANITY_USER, "isActive": False}
    assert client.post(url, json={"email": "jane@shop.test"}).json()["error"] == (
        "Please activate your premium account first"
    )

    sanity.fetch.return_value = {**SANITY_USER, "isActive": True, "businessStatus": "pending"}
    assert client.post(url, json={"email": "jane@shop.test"}).json()["error"] == (
        "Business account application is already pending approval."
    )

    sanity.fetch.return_value = {**SANITY_USER, "isActive": True, "isBusiness": True}
    assert client.post(url, json={"email": "jane@shop.test"}).json()["error"] == (
        "Business account already approved"
    )
    sanity.patch.assert_not_called()


def test_user_data_for_own_email(client, sanity):
    sanity.fetch.side_effect = [[{"_id": "a1"}], [{"_id": "o1"}]]

    body = client.get("/api/user-data", params={"email": "JANE@shop.test"}).json()

    assert body == {"addresses": [{"_id": "a1"}], "orders": [{"_id": "o1"}]}


def test_user_data_requires_email(client):
    response = client.get("/api/user-data")

    assert response.status_code == 400
    assert response.json()["error"] == "Email parameter is required"


def test_user_data_for_other_email_is_forbidden(client, sanity):
    response = client.get("/api/user-data", params={"email": "bob@shop.test"})

    assert response.status_code == 403
    sanity.fetch.assert_not_called()


def test_admin_can_read_any_user_data(client, sanity, sign_in, admin_user):
    sign_in(admin_user)
    sanity.fetch.return_value = []

    response = client.get("/api/user-data", params={"email": "bob@shop.test"})

    assert response.status_code == 200


def test_customer_without_session_cannot_read(client, sign_in):
    sign_in(None)

    assert client.get("/api/user-data", params={"email": "jane@shop.test"}).status_code == 401


def test_other_user_has_no_points(client, sanity, sign_in):
    sign_in(ClerkUser(id="user_other", email="other@shop.test"))

    client.get("/api/user/points")

    assert sanity.fetch.call_args.args[1] == {"clerkUserId": "user_other"}

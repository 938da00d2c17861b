"""Ordering load test scenarios.

Three stateful SequentialTaskSet journeys: a browsing shopper who fills a
cart and walks away, a shopper who checks out with a coupon and pays online,
and a cash-on-delivery order driven through fulfilment by back-office staff.
"""

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import checkout_data, coupon_data, custom_item_data, unique_user_id
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import ShopperState


class _ShopperJourney(SequentialTaskSet):
    def on_start(self):
        self.state = ShopperState(user_id=unique_user_id())

    def _add_item(self, label):
        with self.client.post(
            f"/carts/{self.state.user_id}/items",
            json=custom_item_data(),
            catch_response=True,
            name="POST /carts/{user}/items",
        ) as resp:
            if resp.status_code == 200:
                self.state.item_ids = [item["id"] for item in resp.json()["items"]]
            else:
                resp.failure(f"{label} failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    def _post_order_step(self, path, name, json=None):
        with self.client.post(
            f"/orders/{self.state.order_id}/{path}",
            json=json,
            catch_response=True,
            name=f"POST /orders/{{id}}/{name}",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"{name} failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()


class CartBrowsingJourney(_ShopperJourney):
    """View Cart -> Add Items -> Change Quantity -> Save For Later -> leave."""

    @task
    def view_cart(self):
        self.client.get(f"/carts/{self.state.user_id}", name="GET /carts/{user}")

    @task
    def add_item_1(self):
        self._add_item("Add item 1")

    @task
    def add_item_2(self):
        self._add_item("Add item 2")

    @task
    def change_quantity(self):
        with self.client.put(
            f"/carts/{self.state.user_id}/items/{self.state.item_ids[0]}",
            json={"quantity": 4},
            catch_response=True,
            name="PUT /carts/{user}/items/{id}",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Update quantity failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def save_for_later(self):
        with self.client.post(
            f"/carts/{self.state.user_id}/items/{self.state.item_ids[-1]}/save",
            catch_response=True,
            name="POST /carts/{user}/items/{id}/save",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Save for later failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class CouponCheckoutJourney(_ShopperJourney):
    """Create Coupon -> Add Items -> Apply Coupon -> Checkout -> Pay."""

    @task
    def create_coupon(self):
        payload = coupon_data()
        with self.client.post("/coupons", json=payload, catch_response=True, name="POST /coupons") as resp:
            if resp.status_code == 201:
                self.state.coupon_code = payload["code"]
            else:
                resp.failure(f"Create coupon failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def add_items(self):
        self._add_item("Add item 1")
        self._add_item("Add item 2")

    @task
    def apply_coupon(self):
        if not self.state.coupon_code:
            return
        with self.client.post(
            f"/carts/{self.state.user_id}/coupon",
            json={"coupon_code": self.state.coupon_code},
            catch_response=True,
            name="POST /carts/{user}/coupon",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Apply coupon failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def checkout(self):
        with self.client.post(
            f"/carts/{self.state.user_id}/checkout",
            json=checkout_data(),
            catch_response=True,
            name="POST /carts/{user}/checkout",
        ) as resp:
            if resp.status_code == 201:
                self.state.order_id = resp.json()["order_id"]
                self.state.order_number = resp.json()["order_number"]
            else:
                resp.failure(f"Checkout failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def initiate_payment(self):
        with self.client.post(
            f"/orders/{self.state.order_id}/payments",
            catch_response=True,
            name="POST /orders/{id}/payments",
        ) as resp:
            if resp.status_code != 201:
                resp.failure(f"Initiate payment failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class CashOnDeliveryFulfilmentJourney(_ShopperJourney):
    """Add Item -> COD Checkout -> Process -> Ship -> Out For Delivery -> Deliver."""

    @task
    def add_item(self):
        self._add_item("Add item")

    @task
    def checkout(self):
        with self.client.post(
            f"/carts/{self.state.user_id}/checkout",
            json=checkout_data(cash_on_delivery=True),
            catch_response=True,
            name="POST /carts/{user}/checkout",
        ) as resp:
            if resp.status_code == 201:
                self.state.order_id = resp.json()["order_id"]
            else:
                resp.failure(f"COD checkout failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def process(self):
        self._post_order_step("process", "process", json={"actor": "warehouse"})

    @task
    def ship(self):
        self._post_order_step("ship", "ship", json={"weight": 0.5, "actor": "warehouse"})

    @task
    def out_for_delivery(self):
        self._post_order_step("out-for-delivery", "out-for-delivery")

    @task
    def deliver(self):
        self._post_order_step("deliver", "deliver")

    @task
    def done(self):
        self.interrupt()


class OrderingUser(HttpUser):
    """Locust user simulating shopper and back-office traffic.

    Weighted distribution:
    - 45% Cart browsing (no checkout)
    - 30% Coupon checkout with online payment
    - 25% Cash-on-delivery order through delivery
    """

    wait_time = between(0.5, 2.0)
    tasks = {
        CartBrowsingJourney: 9,
        CouponCheckoutJourney: 6,
        CashOnDeliveryFulfilmentJourney: 5,
    }

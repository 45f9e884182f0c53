"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test overbooking
  locust -f locustfile.py --tags churn        # Book/cancel with promotion
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import random
import uuid
from locust import HttpUser, task, between, tag, events

# Shared state
EVENT_IDS = []
CONCURRENCY_EVENT_ID = None
CONCURRENCY_TICKETS = 10


def random_user_id():
    return f"load-{uuid.uuid4().hex[:12]}"


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    """Setup: Create event with limited tickets for concurrency test."""
    print("\n" + "="*60)
    print("SETUP: Creating concurrency test event...")
    print("="*60)


@events.test_stop.add_listener
def on_test_stop(environment, **kwargs):
    if CONCURRENCY_EVENT_ID:
        print(f"\nVerify: GET /api/v1/events/{CONCURRENCY_EVENT_ID}")
        print(f"  available_tickets >= 0 and confirmed bookings <= {CONCURRENCY_TICKETS}\n")


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 users → 10 tickets

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM bookings
      WHERE event_id = X AND status = 'CONFIRMED' AND deleted_at IS NULL;
    Should be ≤ 10. Everyone else is on the waiting list.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.user_id = random_user_id()

        if not CONCURRENCY_EVENT_ID:
            resp = self.client.post("/api/v1/events/", json={"total_tickets": CONCURRENCY_TICKETS})
            if resp.status_code == 201:
                globals()["CONCURRENCY_EVENT_ID"] = resp.json()["id"]
                print(f"\n✓ Created event {CONCURRENCY_EVENT_ID} with {CONCURRENCY_TICKETS} tickets\n")

    @tag("concurrency")
    @task
    def book_limited_tickets(self):
        """All users fight for the same 10 tickets."""
        if not CONCURRENCY_EVENT_ID:
            return

        with self.client.post("/api/v1/bookings/",
            json={"event_id": CONCURRENCY_EVENT_ID, "user_id": self.user_id},
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 202:
                resp.success()  # Expected: sold out, waitlisted
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ChurnUser(HttpUser):
    """
    TEST 2: Churn - book then cancel on small events

    Run: locust -f locustfile.py --tags churn -u 50 -r 10 --run-time 60s

    Every cancellation either releases a ticket or promotes the next
    waiting user. Check afterwards that no event reports negative
    available_tickets and that POST /events/{id}/reconcile reports
    previous_available equal to the reconciled value.
    """
    wait_time = between(0.05, 0.3)

    def on_start(self):
        self.user_id = random_user_id()
        self.booking_ids = []

        if len(EVENT_IDS) < 5:
            resp = self.client.post("/api/v1/events/", json={"total_tickets": random.randint(1, 5)})
            if resp.status_code == 201:
                EVENT_IDS.append(resp.json()["id"])

    @tag("churn")
    @task(3)
    def book(self):
        if not EVENT_IDS:
            return
        resp = self.client.post("/api/v1/bookings/",
            json={"event_id": random.choice(EVENT_IDS), "user_id": self.user_id})
        if resp.status_code == 201:
            self.booking_ids.append(resp.json()["booking"]["id"])

    @tag("churn")
    @task(2)
    def cancel(self):
        if not self.booking_ids:
            return
        booking_id = self.booking_ids.pop(random.randrange(len(self.booking_ids)))
        with self.client.delete(f"/api/v1/bookings/{booking_id}",
            name="/api/v1/bookings/{id}",
            catch_response=True
        ) as resp:
            if resp.status_code in [200, 404]:
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("churn", "read")
    @task(2)
    def view_event(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}",
                name="/api/v1/events/{id}")

    @tag("churn", "read")
    @task(1)
    def my_bookings(self):
        self.client.get("/api/v1/bookings/", params={"user_id": self.user_id},
            name="/api/v1/bookings/?user_id")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    @tag("edge")
    @task
    def invalid_event_id(self):
        """Book non-existent event."""
        with self.client.post("/api/v1/bookings/",
            json={"event_id": str(uuid.uuid4()), "user_id": random_user_id()},
            catch_response=True
        ) as resp:
            if resp.status_code == 404:
                resp.success()
            else:
                resp.failure(f"Expected 404, got {resp.status_code}")

    @tag("edge")
    @task
    def negative_tickets(self):
        """Try to create an event with negative tickets."""
        with self.client.post("/api/v1/events/",
            json={"total_tickets": -5},
            catch_response=True
        ) as resp:
            if resp.status_code == 400:
                resp.success()
            else:
                resp.failure(f"Expected 400, got {resp.status_code}")

    @tag("edge")
    @task
    def cancel_unknown_booking(self):
        with self.client.delete(f"/api/v1/bookings/{uuid.uuid4()}",
            name="/api/v1/bookings/{id}",
            catch_response=True
        ) as resp:
            if resp.status_code == 404:
                resp.success()
            else:
                resp.failure(f"Expected 404, got {resp.status_code}")

    @tag("edge")
    @task
    def malformed_json(self):
        """Send garbage data."""
        with self.client.post("/api/v1/bookings/",
            data="not json at all",
            catch_response=True
        ) as resp:
            if resp.status_code in [400, 422]:
                resp.success()
            else:
                resp.failure(f"Expected 400/422, got {resp.status_code}")

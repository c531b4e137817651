"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Flood one class session
  locust -f locustfile.py --tags read         # Listing and availability
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All tests

The target session and members must already exist in the database:
  LOAD_CLASS_ID     class id                      (default: vinyasa)
  LOAD_DATE         session date, YYYY-MM-DD      (required)
  LOAD_TIME         session time                  (default: 09:00)
  LOAD_MEMBER_IDS   comma separated member ids    (default: load-1 .. load-200)
"""

import os
import random

from locust import HttpUser, task, between, tag, events

CLASS_ID = os.environ.get("LOAD_CLASS_ID", "vinyasa")
SESSION_DATE = os.environ.get("LOAD_DATE", "")
SESSION_TIME = os.environ.get("LOAD_TIME", "09:00")
MEMBER_IDS = [m for m in os.environ.get("LOAD_MEMBER_IDS", "").split(",") if m] or [
    f"load-{i}" for i in range(1, 201)
]

# Shared state
BOOKING_IDS = []


def session_payload(user_id):
    return {"userId": user_id, "classId": CLASS_ID, "date": SESSION_DATE, "time": SESSION_TIME}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"TARGET: {CLASS_ID} on {SESSION_DATE or '<LOAD_DATE unset>'} at {SESSION_TIME}")
    print(f"MEMBERS: {len(MEMBER_IDS)}")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - every member books the same session

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      GET /api/v1/classes/{LOAD_CLASS_ID}/availability?date=...&time=...
    confirmed must be <= capacity, and waitlist positions must be 1..k:
      SELECT waitlist_position FROM class_bookings
      WHERE status = 'waitlisted' ORDER BY waitlist_position;
    """
    wait_time = between(0, 0.1)

    @tag("concurrency")
    @task(5)
    def book_same_session(self):
        user_id = random.choice(MEMBER_IDS)
        with self.client.post(
            "/api/v1/bookings/",
            json=session_payload(user_id),
            name="/api/v1/bookings/ [flood]",
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                BOOKING_IDS.append(resp.json()["bookingId"])
                resp.success()
            elif resp.status_code in (409, 503):
                resp.success()  # Expected: already booked, or session busy
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("concurrency")
    @task(1)
    def cancel_random(self):
        """Cancellations drive promotions while admissions keep arriving."""
        if not BOOKING_IDS:
            return
        booking_id = BOOKING_IDS.pop(random.randrange(len(BOOKING_IDS)))
        with self.client.delete(
            f"/api/v1/bookings/{booking_id}",
            name="/api/v1/bookings/{id}",
            catch_response=True,
        ) as resp:
            if resp.status_code in (200, 409, 503):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ReadUser(HttpUser):
    """
    TEST 2: Read side - listings and availability never take a slot lock

    Run: locust -f locustfile.py --tags read -u 100 -r 20 --run-time 60s
    """
    wait_time = between(0.1, 0.5)

    @tag("read")
    @task(5)
    def list_bookings(self):
        self.client.get(
            "/api/v1/bookings/",
            params={"userId": random.choice(MEMBER_IDS), "upcoming": "true"},
            name="/api/v1/bookings/?userId",
        )

    @tag("read")
    @task(3)
    def availability(self):
        self.client.get(
            f"/api/v1/classes/{CLASS_ID}/availability",
            params={"date": SESSION_DATE, "time": SESSION_TIME},
            name="/api/v1/classes/{id}/availability",
        )

    @tag("read")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def expect(self, resp, *codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_class(self):
        payload = session_payload(random.choice(MEMBER_IDS))
        payload["classId"] = "no-such-class"
        with self.client.post("/api/v1/bookings/", json=payload, catch_response=True) as resp:
            self.expect(resp, 404)

    @tag("edge")
    @task
    def bad_time(self):
        payload = session_payload(random.choice(MEMBER_IDS))
        payload["time"] = "25:99"
        with self.client.post("/api/v1/bookings/", json=payload, catch_response=True) as resp:
            self.expect(resp, 400)

    @tag("edge")
    @task
    def missing_fields(self):
        with self.client.post("/api/v1/bookings/", json={}, catch_response=True) as resp:
            self.expect(resp, 400)

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            "/api/v1/bookings/",
            data="not json at all",
            headers={"Content-Type": "application/json"},
            catch_response=True,
        ) as resp:
            self.expect(resp, 400)

    @tag("edge")
    @task
    def cancel_unknown(self):
        with self.client.delete(
            "/api/v1/bookings/999999999",
            name="/api/v1/bookings/{id}",
            catch_response=True,
        ) as resp:
            self.expect(resp, 404)

"""
Locust Load Test Suite

Registration needs an approved event. Create one (club officer proposes,
administrator approves) and pass its id:

  LOAD_EVENT_ID=12 locust -f locustfile.py --tags concurrency  # Test overbooking
  locust -f locustfile.py --tags throughput                    # Test cache
  LOAD_EVENT_ID=12 locust -f locustfile.py --tags edge         # Test bad input
  LOAD_EVENT_ID=12 locust -f locustfile.py                     # All tests
"""

import os
import random
import string
from locust import HttpUser, task, between, tag, events

EVENT_IDS = []
LOAD_EVENT_ID = int(os.environ["LOAD_EVENT_ID"]) if os.environ.get("LOAD_EVENT_ID") else None
PASSWORD = "loadtest123"


def random_email():
    return f"load_{random.randint(100000, 999999)}@campus.edu"


def random_reg_no():
    return "L" + "".join(random.choices(string.digits, k=8))


def sign_up(client) -> dict:
    """Create a student account and return auth headers ({} on failure)."""
    email = random_email()
    client.post("/api/v1/auth/register", json={
        "email": email,
        "name": "Load Student",
        "reg_no": random_reg_no(),
        "password": PASSWORD,
    })
    resp = client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
    if resp.status_code == 200:
        return {"Authorization": f"Bearer {resp.json()['access_token']}"}
    return {}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"Target event for registration scenarios: {LOAD_EVENT_ID or 'none (set LOAD_EVENT_ID)'}")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - many students, few seats

    Run: LOAD_EVENT_ID=X locust -f locustfile.py --tags concurrency -u 200 -r 100 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM registrations WHERE event_id = X AND status = 'registered';
    Must equal events.current_participants and be <= max_participants.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = sign_up(self.client)
        self.done = False

    @tag("concurrency")
    @task
    def register_for_limited_event(self):
        """Every user registers once; admitted, waitlisted or full are all fine."""
        if not LOAD_EVENT_ID or not self.headers or self.done:
            return

        with self.client.post(f"/api/v1/events/{LOAD_EVENT_ID}/registrations",
            json={},
            headers=self.headers,
            name="/api/v1/events/{id}/registrations",
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: full, already registered, deadline
            else:
                resp.failure(f"Unexpected: {resp.status_code}")
        self.done = True


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. With REDIS_ENABLED=false on the API, run again
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_events_cached(self):
        page = random.randint(1, 5)
        resp = self.client.get(f"/api/v1/events/?page={page}&page_size=20",
            name="/api/v1/events/ [cached]")
        if resp.status_code == 200:
            for event in resp.json().get("events", []):
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @tag("throughput", "read")
    @task(3)
    def get_event_detail(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}",
                name="/api/v1/events/{id}")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: LOAD_EVENT_ID=X locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = sign_up(self.client)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_event(self):
        with self.client.post("/api/v1/events/999999/registrations",
            json={}, headers=self.headers, catch_response=True,
            name="/api/v1/events/[unknown]/registrations") as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def unknown_category(self):
        event_id = LOAD_EVENT_ID or 1
        with self.client.post(f"/api/v1/events/{event_id}/registrations",
            json={"category": "vip"}, headers=self.headers, catch_response=True,
            name="/api/v1/events/{id}/registrations [bad category]") as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def malformed_json(self):
        event_id = LOAD_EVENT_ID or 1
        with self.client.post(f"/api/v1/events/{event_id}/registrations",
            data="not json at all",
            headers={**self.headers, "Content-Type": "application/json"},
            catch_response=True,
            name="/api/v1/events/{id}/registrations [malformed]") as resp:
            self._expect(resp, [400, 422])

    @tag("edge")
    @task
    def missing_auth(self):
        event_id = LOAD_EVENT_ID or 1
        with self.client.post(f"/api/v1/events/{event_id}/registrations",
            json={}, catch_response=True,
            name="/api/v1/events/{id}/registrations [anonymous]") as resp:
            self._expect(resp, [401])

    @tag("edge")
    @task
    def cancel_twice(self):
        """Withdrawing is idempotent; withdrawing without a registration is 404."""
        if not LOAD_EVENT_ID:
            return
        url = f"/api/v1/events/{LOAD_EVENT_ID}/registrations/me"
        with self.client.delete(url, headers=self.headers, catch_response=True,
            name="/api/v1/events/{id}/registrations/me") as resp:
            self._expect(resp, [200, 404])


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

      - Mostly browsing
      - Some registrations and withdrawals
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.headers = sign_up(self.client)
        self.registered = set()

    @task(50)
    def browse_events(self):
        resp = self.client.get("/api/v1/events/?page=1&page_size=20")
        if resp.status_code == 200:
            for event in resp.json().get("events", []):
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @task(20)
    def view_event(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}",
                name="/api/v1/events/{id}")

    @task(10)
    def register(self):
        if EVENT_IDS and self.headers:
            event_id = random.choice(EVENT_IDS)
            resp = self.client.post(f"/api/v1/events/{event_id}/registrations",
                json={}, headers=self.headers,
                name="/api/v1/events/{id}/registrations")
            if resp.status_code == 201:
                self.registered.add(event_id)

    @task(3)
    def withdraw(self):
        if self.registered and self.headers:
            event_id = self.registered.pop()
            self.client.delete(f"/api/v1/events/{event_id}/registrations/me",
                headers=self.headers,
                name="/api/v1/events/{id}/registrations/me")

    @task(2)
    def my_registrations(self):
        if self.headers:
            self.client.get("/api/v1/registrations/me", headers=self.headers)

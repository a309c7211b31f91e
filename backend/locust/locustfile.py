"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags search      # Test performer search cache
  locust -f locustfile.py --tags enquiry     # Test enquiry writes
  locust -f locustfile.py --tags edge        # Test bad input
  locust -f locustfile.py                    # All tests

Seed the database first (python -m app.scripts.seed) so there are
categories and performers to browse.
"""

import random
from datetime import date, timedelta

from locust import HttpUser, between, events, tag, task

# Shared state
PERFORMER_IDS = []
CATEGORY_SLUGS = []
LOCATIONS = ["London", "Manchester", "Birmingham", "Leeds"]
PASSWORD = "LoadTest123"


def random_email():
    return f"load_{random.randint(100000, 999999)}@test.com"


def signup(client, user_type="CLIENT"):
    """Register a fresh user and return auth headers (empty on failure)."""
    resp = client.post("/api/v1/auth/signup", json={
        "email": random_email(),
        "password": PASSWORD,
        "first_name": "Load",
        "last_name": "Tester",
        "user_type": user_type,
    })
    if resp.status_code == 201:
        return {"Authorization": f"Bearer {resp.json()['tokens']['access_token']}"}
    return {}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print("SETUP: expecting seeded categories and performers")
    print("=" * 60)


class SearchUser(HttpUser):
    """
    TEST 1: Throughput - performer search cache

    Run twice:
      1. With Redis: locust -f locustfile.py --tags search -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false, run again

    Compare avg response time, requests/sec and P95/P99 latency.
    """
    wait_time = between(0.1, 0.5)

    @tag("search", "read")
    @task(10)
    def search_performers(self):
        params = {"page": random.randint(1, 3), "limit": 20, "sort_by": random.choice(["rating", "price"])}
        if random.random() < 0.5:
            params["location"] = random.choice(LOCATIONS)
        resp = self.client.get("/api/v1/performers", params=params, name="/api/v1/performers [cached]")
        if resp.status_code == 200:
            for performer in resp.json().get("performers", []):
                if performer["id"] not in PERFORMER_IDS:
                    PERFORMER_IDS.append(performer["id"])

    @tag("search", "read")
    @task(5)
    def list_categories(self):
        resp = self.client.get("/api/v1/categories", name="/api/v1/categories [cached]")
        if resp.status_code == 200 and not CATEGORY_SLUGS:
            CATEGORY_SLUGS.extend(c["slug"] for c in resp.json().get("categories", []))

    @tag("search", "read")
    @task(3)
    def category_detail(self):
        if CATEGORY_SLUGS:
            self.client.get(f"/api/v1/categories/{random.choice(CATEGORY_SLUGS)}", name="/api/v1/categories/{slug}")

    @tag("search", "read")
    @task(3)
    def performer_profile(self):
        if PERFORMER_IDS:
            self.client.get(f"/api/v1/performers/{random.choice(PERFORMER_IDS)}", name="/api/v1/performers/{id}")

    @tag("search")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EnquiryUser(HttpUser):
    """
    TEST 2: Enquiry writes

    Run: locust -f locustfile.py --tags enquiry -u 50 -r 10 --run-time 60s

    Every request should be 201; anything else is a failure.
    """
    wait_time = between(1, 2)

    def on_start(self):
        self.headers = signup(self.client)
        resp = self.client.get("/api/v1/performers?limit=50")
        if resp.status_code == 200:
            for performer in resp.json().get("performers", []):
                if performer["id"] not in PERFORMER_IDS:
                    PERFORMER_IDS.append(performer["id"])

    @tag("enquiry")
    @task(5)
    def send_enquiry(self):
        if not PERFORMER_IDS or not self.headers:
            return
        event_date = date.today() + timedelta(days=random.randint(30, 180))
        with self.client.post("/api/v1/enquiries",
            json={
                "performer_id": random.choice(PERFORMER_IDS),
                "event_type": random.choice(["Wedding", "Birthday", "Corporate"]),
                "event_date": event_date.isoformat(),
                "event_time": "19:00",
                "event_duration": random.randint(1, 5),
                "event_location": random.choice(LOCATIONS),
                "guest_count": random.randint(10, 200),
                "message": "Looking for entertainment for our event, are you available?",
            },
            headers=self.headers,
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("enquiry", "read")
    @task(3)
    def list_my_enquiries(self):
        if self.headers:
            self.client.get("/api/v1/enquiries", headers=self.headers)

    @tag("enquiry", "read")
    @task(1)
    def my_profile(self):
        if self.headers:
            self.client.get("/api/v1/users/me", headers=self.headers)


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = signup(self.client)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_performer(self):
        with self.client.post("/api/v1/enquiries",
            json={
                "performer_id": 999999,
                "event_type": "Wedding",
                "event_date": (date.today() + timedelta(days=60)).isoformat(),
                "event_duration": 2,
                "event_location": "London",
                "message": "This performer does not exist at all",
            },
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def bad_duration(self):
        with self.client.post("/api/v1/enquiries",
            json={
                "performer_id": 1,
                "event_type": "Wedding",
                "event_date": (date.today() + timedelta(days=60)).isoformat(),
                "event_duration": 48,
                "event_location": "London",
                "message": "Two full days of entertainment please",
            },
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def bad_search_limit(self):
        with self.client.get("/api/v1/performers?limit=5000", catch_response=True) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/v1/enquiries",
            data="not json at all",
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, [400, 422])

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.get("/api/v1/bookings", catch_response=True) as resp:
            self._expect(resp, [401])

    @tag("edge")
    @task
    def unsigned_webhook(self):
        with self.client.post("/api/v1/webhooks/stripe", data="{}", catch_response=True) as resp:
            self._expect(resp, [400, 500])

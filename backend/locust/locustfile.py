"""
Locust Load Test Suite

Trips are not created through the API; seed them first and pass their slugs:
  TRIP_SLUG=<10-seat trip>  BROWSE_SLUGS=<slug,slug,...>

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test overbooking
  locust -f locustfile.py --tags throughput   # Test cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import os
import random
import string
from locust import HttpUser, task, between, tag, events

CONCURRENCY_SLUG = os.environ.get("TRIP_SLUG", "load-test-trip")
BROWSE_SLUGS = [s for s in os.environ.get("BROWSE_SLUGS", CONCURRENCY_SLUG).split(",") if s]


def random_email():
    return f"load_{random.randint(10000, 99999)}@example.com"


def random_national_id():
    return "".join(random.choices(string.digits, k=11))


def booking_body(slug, participants=1, with_payment=False):
    return {
        "slug": slug,
        "applicant_type": "individual",
        "contact_first_name": "Load",
        "contact_last_name": "Tester",
        "contact_email": random_email(),
        "contact_phone": "600100200",
        "address": {"street": "Testowa 1", "city": "Kraków", "zip": "30-001"},
        "participants": [
            {"first_name": f"Guest{i}", "last_name": "Tester", "national_id": random_national_id()}
            for i in range(participants)
        ],
        "consents": {"data_processing": True, "terms": True, "conditions": True},
        "with_payment": with_payment,
    }


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "="*60)
    print(f"Concurrency trip: {CONCURRENCY_SLUG}")
    print(f"Browse trips:     {', '.join(BROWSE_SLUGS)}")
    print("="*60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 users → 10 seats

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT seats_reserved, seats_total FROM trips WHERE slug = '<TRIP_SLUG>';
      SELECT COUNT(*) FROM participants p JOIN bookings b ON b.id = p.booking_id
        JOIN trips t ON t.id = b.trip_id WHERE t.slug = '<TRIP_SLUG>';
    seats_reserved must be ≤ seats_total and equal the participant count
    """
    wait_time = between(0, 0.1)

    @tag("concurrency")
    @task
    def book_limited_seats(self):
        """All users fight for the same seats."""
        with self.client.post("/api/v1/bookings",
            json=booking_body(CONCURRENCY_SLUG),
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: sold out
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: Stop Redis, run again

    Compare:
      - Avg response time
      - Requests/sec
      - P95/P99 latency
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def view_trip_cached(self):
        """Hammer the cached trip view."""
        self.client.get(f"/api/v1/trips/{random.choice(BROWSE_SLUGS)}",
            name="/api/v1/trips/{slug} [cached]")

    @tag("throughput")
    @task(1)
    def health_check(self):
        """Monitor system health."""
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, expected, **kwargs):
        with self.client.post("/api/v1/bookings", catch_response=True, **kwargs) as resp:
            if resp.status_code in expected:
                resp.success()
            else:
                resp.failure(f"Expected {expected}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_trip(self):
        """Book a trip that does not exist."""
        self._expect([404], json=booking_body("no-such-trip-999999"))

    @tag("edge")
    @task
    def missing_consent(self):
        body = booking_body(CONCURRENCY_SLUG)
        body["consents"]["terms"] = False
        self._expect([400], json=body)

    @tag("edge")
    @task
    def no_participants(self):
        self._expect([400], json=booking_body(CONCURRENCY_SLUG, participants=0))

    @tag("edge")
    @task
    def invalid_national_id(self):
        body = booking_body(CONCURRENCY_SLUG)
        body["participants"][0]["national_id"] = "123"
        self._expect([400], json=body)

    @tag("edge")
    @task
    def huge_group(self):
        """Ask for far more seats than any trip has."""
        self._expect([409], json=booking_body(CONCURRENCY_SLUG, participants=500))

    @tag("edge")
    @task
    def malformed_json(self):
        """Send garbage data."""
        self._expect([400], data="not json at all",
            headers={"Content-Type": "application/json"})


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Simulates real traffic:
      - Mostly browsing trips
      - Some bookings, a share of them with online payment
      - Self-service lookups of own bookings
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.booking_url = None

    @task(50)
    def browse_trips(self):
        self.client.get(f"/api/v1/trips/{random.choice(BROWSE_SLUGS)}",
            name="/api/v1/trips/{slug}")

    @task(10)
    def book_trip(self):
        """Occasional booking."""
        resp = self.client.post("/api/v1/bookings",
            json=booking_body(
                random.choice(BROWSE_SLUGS),
                participants=random.randint(1, 3),
                with_payment=random.random() < 0.3,
            ))
        if resp.status_code == 201:
            self.booking_url = resp.json()["booking_url"]

    @task(5)
    def view_own_booking(self):
        """Follow the self-service link from the confirmation."""
        url = self.booking_url
        if url and "/booking/" in url:
            token = url.rsplit("/", 1)[-1]
            self.client.get(f"/api/v1/bookings/by-token/{token}",
                name="/api/v1/bookings/by-token/{token}")

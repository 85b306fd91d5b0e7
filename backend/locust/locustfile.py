"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Overlapping materialization
  locust -f locustfile.py --tags lineup       # Lineup replacement churn
  locust -f locustfile.py --tags throughput   # Listing cache
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All tests

Tokens are minted locally with the API's signing key (SECRET_KEY must match
the server's), or taken from LOAD_TEST_TOKEN when set.
"""

import os
import random
from datetime import date, timedelta

from locust import HttpUser, task, between, tag, events

from venue_calendar.core.security import create_access_token

ORG_ID = os.environ.get("LOAD_TEST_ORG", "org-load")
BASE = f"/api/v1/orgs/{ORG_ID}"

# Shared state
EVENT_IDS = []
BAND_IDS = []
CONCURRENCY_EVENT_ID = None


def auth_headers():
    token = os.environ.get("LOAD_TEST_TOKEN") or create_access_token(
        data={"sub": f"load-{random.randint(10000, 99999)}", "orgs": [ORG_ID]},
        expires_delta=timedelta(hours=2),
    )
    return {"Authorization": f"Bearer {token}"}


def random_window(max_days=90):
    start = date(2024, 1, 1) + timedelta(days=random.randint(0, 60))
    end = start + timedelta(days=random.randint(0, max_days))
    return start.isoformat(), end.isoformat()


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "="*60)
    print(f"SETUP: load test against org {ORG_ID}")
    print("="*60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - many callers materialize overlapping windows of one template

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify no date was stored twice:
      SELECT instance_date, COUNT(*) FROM event_instances
      WHERE event_id = X GROUP BY instance_date HAVING COUNT(*) > 1;
    Should return no rows.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = auth_headers()

        if not CONCURRENCY_EVENT_ID:
            resp = self.client.post(f"{BASE}/events/",
                json={
                    "title": "Concurrency Test Weekly",
                    "is_weekly": True,
                    "day_of_week": 5,
                    "start_time": "21:00:00",
                },
                headers=self.headers
            )
            if resp.status_code == 201:
                globals()["CONCURRENCY_EVENT_ID"] = resp.json()["id"]
                print(f"\n✓ Created weekly event {CONCURRENCY_EVENT_ID}\n")

    @tag("concurrency")
    @task
    def materialize_overlapping(self):
        """All users expand the same template over overlapping windows."""
        if not CONCURRENCY_EVENT_ID:
            return

        start, end = random_window()
        with self.client.post(f"{BASE}/events/{CONCURRENCY_EVENT_ID}/instances/materialize",
            json={"start_date": start, "end_date": end},
            headers=self.headers,
            name="/events/{id}/instances/materialize",
            catch_response=True
        ) as resp:
            if resp.status_code == 200:
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class LineupUser(HttpUser):
    """
    TEST 2: Lineup churn - concurrent full replacements of one template lineup

    Run: locust -f locustfile.py --tags lineup -u 50 -r 10 --run-time 60s

    Every GET must show a dense 0..N-1 order; a mix of two writers' rows
    would show up as gaps or duplicates.
    """
    wait_time = between(0, 0.2)

    def on_start(self):
        self.headers = auth_headers()
        if not BAND_IDS:
            for i in range(6):
                resp = self.client.post(f"{BASE}/bands/",
                    json={"name": f"Load Band {i}"}, headers=self.headers)
                if resp.status_code == 201:
                    BAND_IDS.append(resp.json()["id"])
        if not EVENT_IDS:
            resp = self.client.post(f"{BASE}/events/",
                json={"title": "Lineup Churn Weekly", "is_weekly": True, "day_of_week": 6},
                headers=self.headers)
            if resp.status_code == 201:
                EVENT_IDS.append(resp.json()["id"])

    @tag("lineup")
    @task(3)
    def replace_lineup(self):
        if not EVENT_IDS or not BAND_IDS:
            return
        band_ids = random.sample(BAND_IDS, random.randint(0, len(BAND_IDS)))
        self.client.put(f"{BASE}/events/{EVENT_IDS[0]}/bands",
            json={"band_ids": band_ids},
            headers=self.headers,
            name="/events/{id}/bands [put]")

    @tag("lineup")
    @task(5)
    def read_lineup(self):
        if not EVENT_IDS:
            return
        with self.client.get(f"{BASE}/events/{EVENT_IDS[0]}/bands",
            headers=self.headers,
            name="/events/{id}/bands [get]",
            catch_response=True
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Unexpected: {resp.status_code}")
                return
            orders = [row["order"] for row in resp.json()]
            if orders == list(range(len(orders))):
                resp.success()
            else:
                resp.failure(f"Order not dense: {orders}")


class ThroughputUser(HttpUser):
    """
    TEST 3: Throughput - Cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: Stop Redis, run again

    Compare:
      - Avg response time
      - Requests/sec
      - P95/P99 latency
    """
    wait_time = between(0.1, 0.5)

    def on_start(self):
        self.headers = auth_headers()

    @tag("throughput", "read")
    @task(10)
    def list_events_cached(self):
        """Hammer the cached endpoint."""
        resp = self.client.get(f"{BASE}/events/", headers=self.headers,
            name="/events/ [cached]")
        if resp.status_code == 200:
            for event in resp.json().get("events", []):
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @tag("throughput", "read")
    @task(3)
    def get_event_detail(self):
        if EVENT_IDS:
            self.client.get(f"{BASE}/events/{random.choice(EVENT_IDS)}",
                headers=self.headers, name="/events/{id}")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 4: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = auth_headers()

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def reversed_range(self):
        event_id = CONCURRENCY_EVENT_ID or 1
        with self.client.post(f"{BASE}/events/{event_id}/instances/materialize",
            json={"start_date": "2024-02-10", "end_date": "2024-02-01"},
            headers=self.headers,
            name="/events/{id}/instances/materialize [reversed]",
            catch_response=True
        ) as resp:
            self._expect(resp, [400, 404])

    @tag("edge")
    @task
    def malformed_date(self):
        event_id = CONCURRENCY_EVENT_ID or 1
        with self.client.post(f"{BASE}/events/{event_id}/instances/materialize",
            json={"start_date": "01/02/2024", "end_date": "2024-03-01"},
            headers=self.headers,
            name="/events/{id}/instances/materialize [bad date]",
            catch_response=True
        ) as resp:
            self._expect(resp, [400, 404])

    @tag("edge")
    @task
    def unknown_band(self):
        event_id = EVENT_IDS[0] if EVENT_IDS else 1
        with self.client.put(f"{BASE}/events/{event_id}/bands",
            json={"band_ids": [999999]},
            headers=self.headers,
            name="/events/{id}/bands [unknown band]",
            catch_response=True
        ) as resp:
            self._expect(resp, [400, 404])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(f"{BASE}/events/",
            data="not json at all",
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, [400, 422])

    @tag("edge")
    @task
    def wrong_org(self):
        with self.client.get("/api/v1/orgs/someone-else/events/",
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, [403])

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.get(f"{BASE}/events/", catch_response=True) as resp:
            self._expect(resp, [401])

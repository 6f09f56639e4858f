"""
Rate Limiter Tests

Module: tests.test_rate_limiter
"""

import unittest

from auth_server.security.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestRateLimiter(unittest.TestCase):
    """Test suite for RateLimiter"""

    def setUp(self):
        """Setup before each test"""
        self.clock = FakeClock()
        self.limiter = RateLimiter(window_seconds=60, max_requests=3, clock=self.clock)

    def test_allows_up_to_limit(self):
        """Test hits below the maximum pass with decreasing remaining"""
        remaining = [self.limiter.hit("1.2.3.4").remaining for _ in range(3)]
        self.assertEqual(remaining, [2, 1, 0])

    def test_rejects_over_limit(self):
        """Test the hit after the maximum is refused"""
        for _ in range(3):
            self.limiter.hit("1.2.3.4")

        decision = self.limiter.hit("1.2.3.4")
        self.assertFalse(decision.allowed)
        self.assertEqual(decision.remaining, 0)

    def test_keys_are_independent(self):
        """Test one client doesn't consume another's allowance"""
        for _ in range(3):
            self.limiter.hit("1.2.3.4")
        self.assertTrue(self.limiter.hit("5.6.7.8").allowed)

    def test_window_slides(self):
        """Test old hits expire"""
        for _ in range(3):
            self.limiter.hit("1.2.3.4")
            self.clock.now += 10

        self.assertFalse(self.limiter.hit("1.2.3.4").allowed)

        # First hit (t=1000) leaves the window at t=1060
        self.clock.now = 1060.0
        self.assertTrue(self.limiter.hit("1.2.3.4").allowed)

    def test_headers(self):
        """Test legacy X-RateLimit-* headers"""
        headers = self.limiter.hit("1.2.3.4").headers()
        self.assertEqual(headers["X-RateLimit-Limit"], "3")
        self.assertEqual(headers["X-RateLimit-Remaining"], "2")
        self.assertEqual(headers["X-RateLimit-Reset"], "60")

    def test_idle_clients_dropped(self):
        """Test clients silent for a whole window stop being tracked"""
        for index in range(1000):
            self.limiter.hit(f"10.0.{index // 256}.{index % 256}")
        self.assertEqual(len(self.limiter), 1000)

        self.clock.now += 10000
        self.limiter.hit("1.2.3.4")

        self.assertEqual(len(self.limiter), 1)

    def test_active_clients_survive_sweep(self):
        """Test a client with a hit inside the window keeps its history"""
        self.limiter.hit("1.2.3.4")
        self.clock.now += 50
        self.limiter.hit("1.2.3.4")
        self.limiter.hit("1.2.3.4")

        # Sweep runs here; the newest hit for 1.2.3.4 is only 10s old
        self.clock.now += 10
        self.limiter.hit("5.6.7.8")

        self.assertEqual(len(self.limiter), 2)
        self.assertEqual(self.limiter.hit("1.2.3.4").remaining, 0)

    def test_reset(self):
        """Test forgetting a key"""
        for _ in range(3):
            self.limiter.hit("1.2.3.4")
        self.limiter.reset("1.2.3.4")
        self.assertTrue(self.limiter.hit("1.2.3.4").allowed)


if __name__ == "__main__":
    unittest.main()

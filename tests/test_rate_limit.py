"""
Rate Limiter Test Suite

Sliding window admission per caller.
"""

import unittest

from fakes import FakeClock

from royale_resolver.rate_limit import RateLimiter


class TestRateLimiter(unittest.TestCase):
    """Test sliding window rate limiting."""

    def setUp(self):
        self.clock = FakeClock()
        self.limiter = RateLimiter(3, window_seconds=60, clock=self.clock)

    def test_admits_up_to_limit(self):
        results = [self.limiter.check("ip:1.2.3.4") for _ in range(3)]
        self.assertTrue(all(r.allowed for r in results))
        self.assertEqual([r.remaining for r in results], [2, 1, 0])

        denied = self.limiter.check("ip:1.2.3.4")
        self.assertFalse(denied.allowed)
        self.assertEqual(denied.remaining, 0)
        self.assertAlmostEqual(denied.retry_after, 60)

    def test_window_slides(self):
        for _ in range(3):
            self.limiter.check("ip:a")
            self.clock.advance(10)

        self.assertFalse(self.limiter.admit("ip:a"))
        # Oldest hit was 30s ago; it leaves the window in 30s
        self.assertAlmostEqual(self.limiter.check("ip:a").retry_after, 30)

        self.clock.advance(30)
        self.assertTrue(self.limiter.admit("ip:a"))
        self.assertFalse(self.limiter.admit("ip:a"))

    def test_denied_requests_do_not_count(self):
        for _ in range(10):
            self.limiter.check("ip:a")
        self.clock.advance(60)
        self.assertEqual([self.limiter.admit("ip:a") for _ in range(4)], [True, True, True, False])

    def test_callers_are_independent(self):
        for _ in range(3):
            self.limiter.check("ip:a")
        self.assertFalse(self.limiter.admit("ip:a"))
        self.assertTrue(self.limiter.admit("ip:b"))

    def test_reset(self):
        for _ in range(3):
            self.limiter.check("ip:a")
        self.limiter.check("ip:b")
        self.limiter.reset("ip:a")
        self.assertTrue(self.limiter.admit("ip:a"))
        self.limiter.reset()
        self.assertEqual(self.limiter.check("ip:b").remaining, 2)

    def test_cleanup_expired(self):
        self.limiter.check("ip:a")
        self.limiter.check("ip:b")
        self.clock.advance(61)
        self.limiter.check("ip:c")
        self.assertEqual(self.limiter.cleanup_expired(), 2)
        self.assertEqual(self.limiter.check("ip:c").remaining, 1)


if __name__ == "__main__":
    unittest.main()

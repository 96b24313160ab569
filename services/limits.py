from services.rate_limiter import RateLimitPolicy


class Limits:
    """
    Single source of truth for every rate-limit policy.
    Each policy is (points, window_seconds, block_seconds); block_seconds=0
    means an exhausted key simply waits for its window to reset.
    """

    # Per client IP, applied at the route layer
    LOGIN_IP = RateLimitPolicy("login_ip", points=20, window_seconds=5 * 60, block_seconds=5 * 60)
    REGISTER_IP = RateLimitPolicy("register_ip", points=10, window_seconds=30 * 60, block_seconds=5 * 60)
    OTP_IP = RateLimitPolicy("otp_ip", points=5, window_seconds=10 * 60, block_seconds=5 * 60)

    # Per email (register, unverified login) or email:purpose (resend)
    OTP_SEND = RateLimitPolicy("otp_send", points=3, window_seconds=15 * 60)

    # Per email:purpose, charged for every code that is actually issued
    OTP_DELIVERY = RateLimitPolicy("otp_delivery", points=5, window_seconds=10 * 60, block_seconds=30 * 60)

    # Per email
    FORGOT_PASSWORD = RateLimitPolicy("forgot_password", points=8, window_seconds=30 * 60, block_seconds=30 * 60)

"""Detection of TikTok's verification (captcha) responses."""

from .detector import ChallengeType, ChallengeInfo, CaptchaDetector

__all__ = [
    "ChallengeType",
    "ChallengeInfo",
    "CaptchaDetector",
]

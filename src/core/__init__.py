"""Core domain package for subscope.

Core holds the rule registry, subscription management, message fan-out and
notification queries without any Telegram or storage-specific code, keeping
the business logic portable.
"""

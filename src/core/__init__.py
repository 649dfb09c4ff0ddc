"""Core domain package for pricewatcher.

Core contains polling, change detection, persistent deduplication and routing
logic without any Telegram, HTTP or file-format specific code, keeping the
pipeline portable and testable with fakes.
"""

"""Turn/action processing helpers.

This package centralizes precondition checks so humans and bots flow through the
same pipeline and get the same rejections.
"""

"""
API route modules.
"""

from forumyzer.api.routes import boards, forumize, live

__all__ = ["boards", "forumize", "live"]

"""
CMS authentication session.
"""

from .session import AuthSession, FileTokenStorage, MemoryTokenStorage, TokenStorage

__all__ = ['AuthSession', 'FileTokenStorage', 'MemoryTokenStorage', 'TokenStorage']

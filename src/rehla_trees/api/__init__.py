"""
CMS API communication
"""

from .client import AuthenticationError, CMSClient, CMSError

__all__ = ['AuthenticationError', 'CMSClient', 'CMSError']

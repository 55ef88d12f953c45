"""
connectors — GitHub account linking for chat identities.

Provides:
  • OAuth2 authorization-URL generation with single-use ``state`` tokens
  • Callback handling (code → token exchange, account lookup)
  • One encrypted credential per identity (AES-256-GCM at rest)
  • The ``LinkService`` façade the chat application calls into
"""

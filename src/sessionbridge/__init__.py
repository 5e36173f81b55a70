"""sessionbridge -- OAuth session orchestration for extension-style clients.

This package drives an authorization-code OAuth flow against an AT Protocol
authorization server from a long-lived *background* context and exposes the
resulting session to short-lived *popup* contexts over an asynchronous
request/response message channel.

Typical workflow::

    sessionbridge config set client_id https://example.com/client-metadata.json
    sessionbridge login     # interactive OAuth flow
    sessionbridge status    # ask the background context for the session

Modules:
    orchestrator: The session orchestrator (authenticate, logout, status).
    router: Action-tag dispatch of inbound request messages.
    callback: Redirect URL fragment parsing.
    popup: The stateless UI controller and its reply reducer.
    channel: In-process cross-context message passing.
    config: XDG-aware settings resolution.
    models: Pydantic models for settings, profiles, and message envelopes.
    exceptions: Exception hierarchy with exit-code mapping.
"""

__version__ = "0.1.0"

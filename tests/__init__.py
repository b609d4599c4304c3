"""
SkillChain SDK Test Suite.

This package contains:
- unit/: Unit tests (no network, mocked handles)
- integration/: Facade and JSON-RPC driver tests over mocked transports
"""

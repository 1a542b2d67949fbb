"""
Games module - Board setups for the engine.

Each setup has its own subpackage with:
- Starter card definitions
- Initial state creation
"""

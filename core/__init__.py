"""
Core business logic package for ChillTap Buddy.

Contains the headless CompanionEngine (core.engine), the event bus
(core.events) and the error types (core.errors). Zero UI dependencies.

The engine is not re-exported here because the component packages
import core.errors and core.events themselves.
"""

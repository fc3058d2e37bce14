"""Mode engine: pipeline values, the step library, and built-in modes.

Steps live in ``chainmode.engine.steps`` and can be imported directly to
compose custom modes.
"""

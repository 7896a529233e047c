"""
Presentation adapters.

Features sit on top of ``shipcore.modules`` and translate host events into
service calls. Nothing below this package imports from it.
"""

"""Reflection, argument conversion, field model and fetch bridging."""

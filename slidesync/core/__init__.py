"""
Core business logic for slide synchronization.

This module is framework-agnostic - it doesn't import FastAPI, the Anthropic
SDK, or any infrastructure concerns. Media decoding and the inference model
are reached through the protocols declared here.
"""

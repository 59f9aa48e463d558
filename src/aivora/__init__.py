"""AIVORA generation broker.

Accepts image/video generation requests, dispatches them to Wavespeed-hosted
models and records the resulting media.
"""

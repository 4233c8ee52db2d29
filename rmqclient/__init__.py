"""Remoting wire codec, request headers, data model and topic routing for RocketMQ-style brokers."""

__version__ = "0.1.0"
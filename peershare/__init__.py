"""Peer-to-peer file sharing with UDP discovery and TCP transfer."""

__version__ = "0.1.0"
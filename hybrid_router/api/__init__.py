"""HTTP API for the Hybrid AI Router"""

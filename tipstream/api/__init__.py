"""TIPSTREAM - HTTP API"""

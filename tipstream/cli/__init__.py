"""TIPSTREAM - Command line interface"""

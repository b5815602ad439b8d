"""
TIPSTREAM - Services Module
Scraping, match caching, prediction generation and scheduling.
"""

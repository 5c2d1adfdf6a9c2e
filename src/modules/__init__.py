"""
Service modules.

- shared: base service, domain exceptions, validators
- tiers: cache-backed player profile lookups
"""

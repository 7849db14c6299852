"""Vital-sign alerting and emergency notification for elder care.

The engine evaluates measurements against clinical thresholds, records
alerts and emergencies, and fans notifications out to caregivers, family
and the coordinator room. Storage and delivery are reached through the
protocols in `carealert.domain.ports`.
"""

"""API Resilience Implementations.

Contains the rate limit governor (proactive avoidance and reactive recovery)
and the query client that applies it with bounded retries.
Bounded Context: API Resilience
"""

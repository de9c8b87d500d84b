"""
Alleyway backend.

Generates local-first travel itineraries through a draft, cross-validate and
review pipeline over several AI providers, then geocodes every activity.
"""

"""
personalization — per-user profile and relevance policy.

Components:
  profile — UserProfile schema, JSON loader/validator, PersonalizationManager
"""

"""
Role resolution and authorization policy engine.

Resolves how an actor relates to users (via shared groups) and conversations
(via group eligibility), and decides per resource and action whether a
request is allowed, forbidden, or told that the resource is missing.
"""

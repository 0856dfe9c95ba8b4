# Services package init
"""
Code Library Backend — Services Layer
======================================

What:  Business logic between the HTTP routes and the key-value store.
How:   Services take request models, apply the snippet rules and return domain
       objects. Route handlers receive them through FastAPI dependencies.

Service Inventory:
    - SnippetRepository: snippet CRUD over the KVStore port
    - IdentityProvider (abstract): user creation for sign-up
    - SupabaseIdentityProvider: GoTrue admin API client (httpx)
"""

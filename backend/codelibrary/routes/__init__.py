# Routes package init
"""
Code Library Backend — API Routes Package
==========================================

What:  HTTP route handlers. All routers are mounted under settings.api_prefix.

Route Inventory:
    - health.py:    GET    /health            (liveness, no auth)
    - auth.py:      POST   /auth/signup       (create a confirmed user)
    - snippets.py:  GET    /snippets          (list all)
                    GET    /snippets/{id}     (one)
                    POST   /snippets          (create)
                    PUT    /snippets/{id}     (partial update)
                    DELETE /snippets/{id}     (delete)

Routes stay thin: extract the body, call the repository or the identity
provider inside a failure boundary, wrap the result in its envelope.
"""

# Services package init
"""
3sConnect Backend — Services Layer
==================================

What:  Business logic between the routes (HTTP) and the database.
How:   Stateless service classes with module-level singletons. Every method
       receives the request's AsyncSession; collaborators (identity, media)
       are passed in per call, never imported as globals.

Service Inventory:
    - PostService:          create / read / like toggle / cascade delete
    - CommentService:       create / read / delete
    - UserService:          sync-on-login, profiles, follow toggle
    - NotificationService:  fan-out (notify) and recipient reads / deletes
    - IdentityProvider (abstract) / ClerkIdentityProvider
    - MediaStorage (abstract) / CloudinaryMediaStorage / LocalMediaStorage
"""

# Routes package init
"""
3sConnect Backend — API Routes Package
======================================

What:  HTTP route handlers that accept requests and return responses.
How:   One module per resource; every router is mounted under the
       configured API prefix (default /api) except the health check.

Route Inventory:
    - posts.py:          GET    /api/posts
                         GET    /api/posts/{post_id}
                         GET    /api/posts/user/{username}
                         POST   /api/posts                  (multipart)
                         POST   /api/posts/{post_id}/like
                         DELETE /api/posts/{post_id}
    - comments.py:       GET    /api/comments/post/{post_id}
                         GET    /api/comments/{comment_id}
                         POST   /api/comments/post/{post_id}
                         DELETE /api/comments/{comment_id}
    - users.py:          POST   /api/users/sync
                         GET    /api/users/me
                         GET    /api/users/profile/{username}
                         PUT    /api/users/profile
    - follow.py:         POST   /api/follow/{target_user_id}
    - notifications.py:  GET    /api/notifications
                         DELETE /api/notifications/{notification_id}
    - health.py:         GET    /health

Design Principle:
    Routes are THIN. They pull the verified actor and collaborators from
    dependencies, call one service method and wrap the result in its
    response envelope. Errors propagate to the global handlers in main.py.
"""

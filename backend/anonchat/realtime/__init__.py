"""Real-time room presence and message broadcast engine.

Modules:
    - gateway: handshake authentication
    - registry: per-room membership with one lock per room
    - presence: user_joined / user_left / online_users events
    - pipeline: validate, persist, then broadcast chat messages
    - broadcaster: delivery of events to connection outboxes
    - router: the WebSocket endpoint wiring it all together
"""

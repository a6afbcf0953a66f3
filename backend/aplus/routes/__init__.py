"""
A+ Marketplace Backend — API Routes Package
=============================================

Route Inventory (all under /api/v1 except /health):
    - health.py:            GET  /health
    - users.py:             /users (register, login, me, public profiles, admin list)
    - notes.py:             /notes (catalog, CRUD, reviews, likes, download,
                            purchase, payment link)
    - purchases.py:         POST /purchase
    - sales.py:             /sales
    - withdrawals.py:       /withdrawals
    - notifications.py:     /notifications (+ WebSocket /notifications/ws)
    - profits.py:           /profits
    - courses.py:           /courses (+ modules, lessons)
    - announcements.py:     /courses/{id}/announcements, /announcements/{id}
    - customer_ratings.py:  /customer-ratings
    - files.py:             GET /files/{path}

Routes stay thin: parse the request, call one service, shape the response.
"""

"""
A+ Marketplace Backend — Services Layer
=========================================

What:  Business rules between routes (HTTP) and models (persistence).
How:   Each module exposes a stateless service class and a module-level
       singleton. Services take the request's AsyncSession, never commit
       it, and raise AplusError subclasses that the app maps to HTTP.
"""

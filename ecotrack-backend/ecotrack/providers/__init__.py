from .firebase_provider import FirebaseProvider

__all__ = [
    "FirebaseProvider"
]

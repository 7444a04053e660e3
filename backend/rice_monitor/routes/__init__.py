from importlib import import_module

modules = [
    'auth',
    'users',
    'fields',
    'submissions',
    'images',
    'analytics',
]

for m in modules:
    import_module(f'.{m}', __name__)

__all__ = modules

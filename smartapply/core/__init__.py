# smartapply/core/__init__.py

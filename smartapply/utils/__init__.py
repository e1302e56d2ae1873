# smartapply/utils/__init__.py

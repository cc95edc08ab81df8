"""Provider client implementations

Modules named *_providers.py are imported by scan_and_import_providers()
so that their @register_provider decorators run.
"""

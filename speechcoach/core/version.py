# speechcoach/core/version.py
APP_NAME = "speechcoach"
APP_VERSION = "1.0.0"

VERSION = "1.0"

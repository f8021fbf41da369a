"""Configuration for the FlintMC CLI."""

# Environment file loaded before FLINT_* variables are read
LOCAL_ENV_FILE = ".env"

# Exit codes
EXIT_TESTS_FAILED = 1
EXIT_RUN_ERROR = 2

# Default sandbox bind address
SANDBOX_HOST = "127.0.0.1"
SANDBOX_PORT = 8765

"""Command line interface for testing configuration loading"""
from . import settings_conf
from pathlib import Path

EXAMPLE_SETTINGS = """[DEFAULT]
# PostgreSQL (or CockroachDB) connection URL
db_url = postgresql://postgres@localhost:5432/ambassador_hub

# Where uploaded submission files are written
uploads_dir = uploads

# Token symbol reported by /api/payments/process
payment_token = XLM

api_host = 0.0.0.0
api_port = 8000
cors_origins = *
log_level = INFO
"""

def main():
    """Display loaded configuration"""
    print("\nSettings Configuration:")
    print("-" * 50)
    for key, value in settings_conf.items():
        print(f"{key}: {value}")

    # Save example configuration file
    example = Path("settings.conf.example")
    if not example.exists():
        example.write_text(EXAMPLE_SETTINGS)
        print(f"\nWrote {example}")

if __name__ == "__main__":
    main()

"""Initialize the parkshare database."""
from parkshare.infrastructure.persistence.database import init_db


def main():
    print("Initializing parkshare database...")
    init_db()
    print("Database initialization complete!")


if __name__ == "__main__":
    main()

from setuptools import setup, find_packages

setup(
    name="clinicflow",
    version="0.1.0",
    description="Appointment scheduling and access-controlled patient records API",
    packages=find_packages(exclude=["tests", "tests.*", "scripts", "alembic", "alembic.*"]),
    python_requires=">=3.9",
    install_requires=[
        "fastapi",
        "uvicorn",
        "sqlalchemy>=2.0",
        "alembic",
        "psycopg2-binary",
        "python-jose[cryptography]",
        "passlib[bcrypt]",
        # passlib 1.7 fails its backend self-test against bcrypt 5
        "bcrypt>=4.0,<5",
        "python-dotenv",
        "pydantic[email]>=2",
        "pydantic-settings",
    ],
    extras_require={
        "test": [
            "pytest",
            "httpx",
        ],
    },
)

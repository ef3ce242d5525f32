from setuptools import setup, find_packages

setup(
    name="healthwatch",
    version="1.0.0",
    description="On-demand memory and disk health checks with diagnostics",
    packages=find_packages(include=["healthwatch", "healthwatch.*"]),
    python_requires=">=3.10",
    install_requires=[
        "psutil>=5.9.0",
        "pydantic>=2.0.0",
        "python-dotenv>=0.19.0",
        "fastapi>=0.100.0",
        "uvicorn>=0.20.0",
        "prometheus-client>=0.16.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "httpx>=0.24.0",  # For FastAPI TestClient
            "black>=21.0.0",
            "isort>=5.0.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "healthwatch=healthwatch.service.main:run",
        ]
    }
)

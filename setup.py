from setuptools import setup, find_packages

setup(
    name="socialtrust",
    version="0.1.0",
    description="Social-graph trust scoring and reputation for recommendation feeds",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    package_data={"socialtrust": ["migrations/*.sql"]},
    install_requires=[
        "pynacl>=1.5.0",
        "pydantic>=2.0",
        "asyncpg>=0.29",
        "python-json-logger>=3.1",
    ],
    extras_require={
        "test": ["pytest>=7.0", "pytest-asyncio>=0.23"],
        "dev": ["pytest>=7.0", "pytest-asyncio>=0.23"],
    },
    entry_points={"console_scripts": ["socialtrust=socialtrust.cli:main"]},
    python_requires=">=3.9",
    license="CC0-1.0",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Libraries",
        "License :: CC0 1.0 Universal (CC0 1.0) Public Domain Dedication",
        "Programming Language :: Python :: 3",
    ],
    keywords="trust reputation social-graph recommendations",
)

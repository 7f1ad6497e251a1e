#!/usr/bin/env python

from setuptools import setup

setup(
    name="kelder",
    version="0.1.0",
    description="Tenant aware blob storage with signed references",
    packages=["kelder", "kelder.api", "kelder.storage"],
    include_package_data=True,
    zip_safe=False,
    python_requires=">=3.11",
    keywords=["API", "storage", "multi-tenant"],
    classifiers=[
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Topic :: System :: Filesystems",
    ],
    install_requires=[
        "fastapi",
        "python-dotenv",
        "authlib",
        "pydantic>=2",
        "pydantic-settings",
        "class-doc",
        "uvicorn",
        "aiobotocore",
        "types-aiobotocore-s3",
        "async-lru",
        "anyio",
    ],
    extras_require={
        'dev': [
            'pytest',
            'httpx',
            'mypy',
            'flake8',
        ]
    },
    entry_points={
        'console_scripts': [
            'kelder = kelder.__main__:main'
        ]
    },
)

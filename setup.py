from setuptools import setup, find_packages

with open("README.md", "r") as fh:
    long_description = fh.read()

setup(
    name="vault-unseal",
    version="0.1.0",
    description="Keep HashiCorp Vault nodes unsealed with unseal keys stored in Bitwarden Secrets Manager",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["vault_unseal", "vault_unseal.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    keywords=["vault", "unseal", "bitwarden", "secrets"],
    python_requires=">=3.11",
    install_requires=[
        "hvac",
        "requests",
        "bitwarden-sdk",
        "loguru",
        "pydantic>=2",
        "python-dotenv",
        "PyYAML",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "vault-unseal=vault_unseal.cli:run",
        ],
    },
)

from setuptools import setup, find_packages

setup(
    name="sh1fr-blockchain-common",
    version="1.0.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "web3>=7.0.0",
        "eth-utils>=4.0.0",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "pyignite[async]>=0.5.2",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    python_requires=">=3.9",
    author="Sh1fr Team",
    description="Wallet/RPC connection management, chain adapters and result caching for EVM networks",
)

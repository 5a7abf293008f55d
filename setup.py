from setuptools import setup, find_packages

setup(
    name="lww-crdt",
    version="0.1.0",
    description="Last-Write-Wins CRDT for JSON documents with a replica simulation harness",
    author="adamfilli",
    packages=find_packages(include=["lwwcrdt", "lwwcrdt.*"]),
    install_requires=[
        "jsonpatch",
        "jsonpointer",
        "matplotlib",
        "pandas",
    ],
    extras_require={
        "test": ["pytest"],
    },
    include_package_data=True,
    python_requires=">=3.11",
)

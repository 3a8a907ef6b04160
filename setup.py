from __future__ import annotations

from setuptools import find_namespace_packages, setup


setup(
    name="s3-manifest",
    version="2.0.0",
    description="List S3 buckets into gzip CSV manifests and convert them to Parquet.",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src", include=["manifest_pkg", "manifest_pkg.*"]),
    install_requires=[
        "boto3>=1.26",
        "botocore>=1.29",
        "polars>=1.0",
        "pyarrow>=12",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
)

from setuptools import find_packages, setup  # isort: skip


with open("README.md") as f:
    long_description = f.read()


setup(
    name="dd-otel-exporter",
    description="OpenTelemetry span exporter for the Datadog Agent trace API",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/DataDog/dd-otel-exporter",
    license="BSD",
    packages=find_packages(exclude=["tests*"]),
    package_data={
        "dd_otel_exporter": ["py.typed"],
    },
    zip_safe=False,
    version="0.1.0",
    python_requires=">=3.8",
    install_requires=[
        "envier>=0.5",
        "msgpack>=1.0.0",
        "opentelemetry-api>=1.15.0",
        "opentelemetry-sdk>=1.15.0",
    ],
    extras_require={
        "test": [
            "hypothesis",
            "mock",
            "pytest",
        ],
    },
    classifiers=[
        "Programming Language :: Python",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
)

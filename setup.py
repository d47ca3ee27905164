from setuptools import setup, find_packages

setup(
    name="protowire",
    version="0.1.0",
    description="A minimal, zero-copy Protobuf wire format decoder",
    long_description=open("README.md", "r", encoding="utf-8").read(),
    long_description_content_type="text/markdown",
    license="MIT",
    packages=find_packages(
        exclude=["tests", "*.tests", "*.tests.*", "benchmarks", "benchmarks.*"]
    ),
    package_data={"protowire": ["py.typed"]},
    python_requires=">=3.8",
    install_requires=["stringcase"],
    extras_require={"test": ["pytest", "hypothesis"]},
    zip_safe=False,
)

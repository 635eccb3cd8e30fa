import setuptools
from setuptools import find_packages

with open("readme.md", "r") as fh:
    long_description = fh.read()


vars2find = ["__author__", "__version__", "__url__"]
vars2readme = {}
with open("./walbackup/__init__.py") as f:
    for line in f.readlines():
        for v in vars2find:
            if line.startswith(v):
                line = line.replace(" ", "").replace('"', "").replace("'", "").strip()
                vars2readme[v] = line.split("=")[1]

core_deps = [
    "pydantic>=2.0.0",
    "redis[hiredis]>=5.0.1",
    "aioboto3",
    "tenacity",
    "xxhash",
    "returns>=0.19.0",
    "python-dotenv>=1.0.0",
]

setuptools.setup(
    name="walbackup",
    url=vars2readme["__url__"],
    version=vars2readme["__version__"],
    author=vars2readme["__author__"],
    description="Incremental write-ahead-log backup engine for column-family stores",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["walbackup", "walbackup.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.9",
    install_requires=core_deps,
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "walbackup-restore=walbackup.restore.driver:main",
        ],
    },
)

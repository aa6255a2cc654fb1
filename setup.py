from setuptools import setup

with open("hilink/version.py") as f:
    exec(f.read())

setup(
    name="python-hilink",
    version=__version__,  # type: ignore # noqa: F821
    description="Python API for logging in to HiLink cellular routers and modems",
    url="https://github.com/python-hilink/python-hilink",
    author="",
    author_email="",
    license="GPLv3",
    packages=["hilink"],
    install_requires=[
        "aiohttp>=3.9",
        "asyncclick>=8.1.7",
        "defusedxml>=0.7",
        "mashumaro>=3.11",
        "multidict>=6.0",
        "yarl>=1.9",
    ],
    extras_require={
        "speedups": ["orjson>=3.9"],
        "test": [
            "freezegun",
            "pytest",
            "pytest-asyncio",
            "pytest-freezer",
            "pytest-mock",
        ],
    },
    python_requires=">=3.11",
    entry_points={"console_scripts": ["hilink=hilink.cli:cli"]},
    zip_safe=False,
)

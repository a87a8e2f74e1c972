from pathlib import Path
from setuptools import setup, find_packages
import re

HERE = Path(__file__).parent

readme = HERE / "README.md"
long_description = readme.read_text(encoding="utf-8") if readme.exists() else ""
init_text = (HERE / "synchttp" / "__init__.py").read_text(encoding="utf-8")
_version_match = re.search(r'^__version__\s*=\s*[\'\"]([^\'\"]+)[\'\"]', init_text, re.M)
version = _version_match.group(1) if _version_match else "0.0.0"

setup(
    name="pysynchttp",
    version=version,
    description="Blocking HTTP client over an asynchronous h11 transport.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["synchttp", "synchttp.*"]),
    include_package_data=True,
    python_requires=">=3.9",
    install_requires=["h11>=0.14.0"],
    extras_require={"test": ["pytest>=7"]},
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3 :: Only",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
    ],
)

from pathlib import Path

from setuptools import find_packages, setup

ROOT = Path(__file__).parent.resolve()
README = ROOT / "README.md"

setup(
    name="hybridlil",
    version="0.1.0",
    description="Hybrid tree-partition approximation of the log integrated likelihood",
    long_description=README.read_text(encoding="utf-8") if README.exists() else "",
    long_description_content_type="text/markdown",
    packages=find_packages(include=["hybridlil", "hybridlil.*"]),
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.23",
        "torch>=2.0",
        "scikit-learn>=1.2",
        "pandas>=1.5",
        "joblib>=1.2",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
)

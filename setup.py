"""Setup configuration for pr_dashboard"""

from setuptools import setup, find_namespace_packages

setup(
    name="pr-evaluation-dashboard",
    version="0.1.0",
    description=(
        "Pull request activity dashboard for team members: summary metrics, "
        "performance scoring, and PDF evaluation reports."
    ),
    author="PR Evaluation Dashboard Contributors",
    author_email="",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src"),
    install_requires=[
        "requests>=2.28.0",
        "fpdf2>=2.7.0",
        "matplotlib>=3.7",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "black>=22.0",
            "flake8>=4.0",
            "mypy>=0.950",
        ],
    },
    entry_points={
        "console_scripts": [
            "pr-evaluation-dashboard=pr_dashboard.main:main",
        ],
    },
)

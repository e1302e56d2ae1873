# setup.py
from setuptools import setup, find_packages

setup(
    name="smartapply",
    version="0.1.0",
    description="Apply code blocks from AI chat replies to a workspace: create files, edit documents or stage terminal commands.",
    author="Your Name or Team",
    author_email="your_email@example.com",
    packages=find_packages(include=['smartapply', 'smartapply.*']),
    include_package_data=True,
    # 配置模板随包发布
    package_data={
        'smartapply': ['templates/*.j2'],
    },
    install_requires=[
        "click>=8.0",
        "pyyaml",
        "jinja2",
        "rich",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            'smartapply = smartapply.cli:cli',
        ],
    },
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Code Generators",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)

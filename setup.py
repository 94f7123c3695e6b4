#!/usr/bin/env python3
"""
Setup script for Ghostwright - static site builder for Ghost.
"""

from setuptools import setup, find_packages
import os

# Read the contents of README file
this_directory = os.path.abspath(os.path.dirname(__file__))
with open(os.path.join(this_directory, 'README.md'), encoding='utf-8') as f:
    long_description = f.read()

setup(
    name='ghostwright',
    version='1.0.0',
    description='A static site builder for Ghost blogs with paginated tag, author and index routes',
    long_description=long_description,
    long_description_content_type='text/markdown',
    packages=find_packages(exclude=['tests', 'tests.*']),
    package_data={
        'ghostwright_pkg': [
            'templates/*.html',
        ],
    },
    include_package_data=True,
    install_requires=[
        'requests>=2.31',
        'PyYAML>=6.0',
        'Jinja2>=3.1',
        'csscompressor>=0.9.5',
        'rjsmin>=1.2',
        'tqdm>=4.66',
    ],
    extras_require={
        'test': [
            'pytest>=7.4',
            'pytest-cov>=4.1',
        ],
    },
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Internet :: WWW/HTTP :: Site Management',
        'Topic :: Software Development :: Code Generators',
    ],
    python_requires='>=3.9',
    entry_points={
        'console_scripts': [
            'ghostwright=ghostwright_pkg.cli:main',
        ],
    },
    keywords='static site generator, ghost, headless cms, graphql, blog, jinja2',
)

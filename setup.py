#!/usr/bin/env python
from setuptools import setup, find_packages

name = 'credshift'
version = '0.3.0'

setup(
    name=name,
    version=version,
    description='Moves plaintext data source passwords into encrypted secure data',
    license='Apache2',
    classifiers=[
        'Intended Audience :: Developers',
        'Intended Audience :: System Administrators',
        'License :: OSI Approved :: Apache Software License',
    ],
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.10',
    install_requires=[
        'cryptography>=3.1',
        'boto3>=1.1.1',
        'click>=7.0',
        'SQLAlchemy>=2.0',
    ],
    extras_require={
        'YAML': ['PyYAML>=3.10'],
        'test': ['pytest>=5.4.1', 'PyYAML>=3.10'],
    },
    entry_points={
        'console_scripts': [
            'credshift = credshift.cli:main'
        ],
        'credshift.cli': [
            'dynamodb = credshift.cli_dynamodb',
        ],
        'credshift.storage_service': [
            'sql = credshift.sql_storage_service:SqlStorageService',
            'dynamodb = credshift.dynamodb_storage_service:DynamoDbStorageService',
        ],
        'credshift.key_service': [
            'static = credshift.key_service:StaticKeyService',
            'kms = credshift.key_service:KmsKeyService',
        ],
    },
)

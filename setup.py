import setuptools

with open('README.md') as infile:
    long_description = infile.read()

with open('VERSION') as infile:
    version = infile.read().strip()

setuptools.setup(
    name='votechain',
    version=version,
    description='Weighted shareholder voting with attested identities',
    long_description=long_description,
    long_description_content_type='text/markdown; charset=UTF-8',
    python_requires='>=3.8.0',
    packages=setuptools.find_packages(exclude=('tests', )),
    install_requires=[
        'eth-abi>=4.0.0',
        'eth-account>=0.9.0',
        'eth-keys>=0.4.0',
        'eth-utils>=2.0.0',
        'pycryptodome>=3.5.1,<4',
    ],
    extras_require={
        'test': ['pytest>=6.2.5'],
    },
    include_package_data=True,
    license='MIT',
    keywords='voting governance delegation attestation ethereum python',
    classifiers=[
        'Development Status :: 2 - Pre-Alpha',
        'Environment :: Console',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Natural Language :: English',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
    ],
    zip_safe=True
)

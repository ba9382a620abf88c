import setuptools

VERSION = '0.1.0'

setup_params = dict(
    name='docrepo',
    version=VERSION,
    author='Kenneth VanderLinde',
    author_email='kwvanderlinde@gmail.com',
    keywords='documentation github markdown requests cache',
    packages=setuptools.find_packages(exclude=['tests', 'tests.*']),
    package_data={'': ['LICENSE.txt']},
    package_dir={'docrepo': 'docrepo'},
    include_package_data=True,
    description='Fetch Markdown documentation from GitHub with conditional HTTP caching',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    install_requires=[
        'requests~=2.32',
        'urllib3>=1.26',
        'Markdown~=3.6',
        'Pygments~=2.18',
    ],
    extras_require={
        'dev': [
            'mockito~=1.5',
            'pytest~=8.3',
            'pytest-cov~=5.0',
            'ddt~=1.7',
        ]
    },
    entry_points={},
    python_requires='>=3.8',
    classifiers=[
        'Development Status :: 2 - Pre-Alpha',
        'Environment :: Web Environment',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: BSD License',
        'Natural Language :: English',
        'Operating System :: OS Independent',

        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3 :: Only',
    ],
)


if __name__ == '__main__':
    setuptools.setup(**setup_params)

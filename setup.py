from setuptools import setup

setup(
    name='mdview',
    version='0.0.1',
    description='Multidimensional array views over borrowed memory',
    author='Philip Thomsen',
    license='MIT',
    packages=['mdview'],
    python_requires='>=3.10',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
)

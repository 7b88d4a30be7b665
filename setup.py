from setuptools import setup, find_packages

setup(
    name='dicexpr',
    version='1.0.0',
    description='Dice shorthand expression parser and evaluator',
    license='MIT',

    packages=find_packages('src'),
    package_dir={'': 'src'},

    include_package_data=True,
    package_data={
        'dicexpr': ['defaults.cfg'],
    },

    install_requires=[
        'pyparsing>=3.1',
    ],
    extras_require={
        'dev': ['behave'],
    }
)

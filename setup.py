from setuptools import find_packages, setup

setup(
    name='blockscope',
    version='0.1.0',

    # We might as well require what we know will work
    # although older numpy and matplotlib version will probably work too
    install_requires=['numpy>=1.12.1',
                      'matplotlib',
                      'pyyaml'],

    extras_require={
        # The vendor SDK wrappers are only needed to talk to real hardware
        'hardware': ['picosdk'],
        'test': ['pytest'],
    },

    description=("Block capture and FFT for PicoScope 6000 series "
                 "oscilloscopes, with a simulated digitizer for use "
                 "without hardware."),

    license='MIT',

    package_dir={'': 'src'},
    packages=find_packages('src'),

    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Science/Research',
        'Programming Language :: Python :: 3 :: Only',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        ],

    python_requires=">=3.10",

    keywords='oscilloscope digitizer block capture FFT spectrum picoscope',
    )

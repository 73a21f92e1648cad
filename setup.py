from setuptools import setup

setup(
    name="fsm-simulator",
    version="0.1.0",
    description="Step-by-step NFA, PDA and Turing machine execution engine.",
    packages=["fsm_simulator"],
    py_modules=["main"],
    python_requires=">=3.8",
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["fsm-simulator=fsm_simulator.cli:run"]},
)

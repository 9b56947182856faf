#!/usr/bin/env python3
# Copyright (c) 2009-2025 The Regents of the University of Michigan.
# Part of HOOMD-blue, released under the BSD 3-Clause License.

"""Command-line interface for cavity dipole molecular dynamics."""

import argparse
import logging
import sys

from .config import parse_cavity_keyword
from .simulation import CavityDipoleSimulation
from .utils import CavityConfigurationError

logger = logging.getLogger('cavitydipole')


def setup_logging(log_level='INFO', log_file=None, log_to_console=True):
    """Configure the package logger with console and optional file handlers."""
    logger.setLevel(getattr(logging, log_level.upper()))
    logger.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s | %(levelname)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w')
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)
    return logger


def build_parser():
    parser = argparse.ArgumentParser(
        description="Run NVE molecular dynamics coupled to a dipole-driven cavity mode"
    )
    parser.add_argument('input_gsd', help='GSD file with the initial configuration')
    parser.add_argument('--force-potential', required=True,
                        help='Model file of the energy/force potential')
    parser.add_argument('--cavity', nargs='+', required=True, metavar='PARAM',
                        help='Cavity parameters: <potential_file> <coupling> <frequency> <charge>')
    parser.add_argument('--q0', type=float, default=None,
                        help='Initial cavity coordinate (default: coupling * mu_z / frequency)')
    parser.add_argument('--steps', type=int, default=1000, help='Number of MD steps (default: 1000)')
    parser.add_argument('--timestep', type=float, default=0.5, help='Time step in fs (default: 0.5)')
    parser.add_argument('--frame', type=int, default=0, help='Frame of the input GSD file (default: 0)')
    parser.add_argument('--kT', type=float, default=None,
                        help='Thermalize momenta at this temperature in eV (default: keep GSD velocities)')
    parser.add_argument('--displacement', type=float, default=1.0e-3,
                        help='Finite-difference step of the dipole Jacobian in Angstrom (default: 1e-3)')
    parser.add_argument('--job-dir', default='.', help='Output directory (default: current directory)')
    parser.add_argument('--log-period', type=int, default=100, help='Table output period in steps (default: 100)')
    parser.add_argument('--seed', type=int, default=1, help='Random seed (default: 1)')
    parser.add_argument('--log-level', default='INFO', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    parser.add_argument('--log-file', default=None, help='Also log to this file')
    return parser


def main(argv=None):
    """Main entry point for cavity dipole MD runs."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    try:
        config = parse_cavity_keyword(args.cavity, q0=args.q0)
        sim = CavityDipoleSimulation(
            config, args.force_potential, args.input_gsd,
            frame=args.frame,
            dt_fs=args.timestep,
            job_dir=args.job_dir,
            kT=args.kT,
            log_period=args.log_period,
            seed=args.seed,
            displacement=args.displacement
        )
        sim.setup()
    except CavityConfigurationError as e:
        logger.error("Configuration error: %s", e)
        return 1

    logger.info("Running %d steps (coupling %g, frequency %g rad/fs, charge %d)",
                args.steps, config.coupling, config.frequency, config.charge)
    with sim:
        sim.run(args.steps)
    return 0


if __name__ == '__main__':
    sys.exit(main())

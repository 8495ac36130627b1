# type: ignore
from invoke import task


@task
def venv(ctx):
    """Create the development environment with uv."""
    ctx.run("uv venv")
    ctx.run('uv pip install -e ".[test,dev]"')


@task
def lint(ctx):
    """
    Run ruff and mypy over the package and its tests.
    """
    ctx.run("ruff check src tests", pty=True)
    ctx.run("ruff format --check src tests", pty=True)
    ctx.run("mypy src", pty=True)


@task
def test(ctx):
    """
    Run tests with coverage information.
    """
    ctx.run("pytest --cov=rcbroker --cov-report=term-missing", pty=True)


@task
def smoke(ctx):
    """Check that the installed CLI starts and reads its configuration."""
    ctx.run("rcbroker --version")
    ctx.run("rcbroker config show")


@task
def build_package(ctx):
    """
    Build package using uv.
    """
    ctx.run("rm -rf dist")
    ctx.run("uv build")

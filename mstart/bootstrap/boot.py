from mstart.bootstrap.config.loader import get_cli_args
from mstart.bootstrap.deps import get_client
from mstart.core.helpers.utils import setup_logging, stop_on_signals


def main():
    cli = get_cli_args()
    setup_logging(cli.log_level)

    client = get_client()
    loop = client.loop

    try:
        with stop_on_signals(loop) as stop_event:
            loop.run_until_complete(client.run(stop_event))
    finally:
        try:
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.run_until_complete(loop.shutdown_default_executor())
        finally:
            loop.close()


if __name__ == "__main__":
    main()

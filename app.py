"""Entry point da aplicação quando executada com ``python app.py``.

Arranca a interface web Flask. A linha de comandos está disponível através
de ``python -m gestao_time.cli`` ou do comando ``gestao-time``.
"""

from gestao_time.web import main as run_web


if __name__ == "__main__":
    run_web()

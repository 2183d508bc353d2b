from .pipeline_cli import main

main()

from mandrill_exporter.cli.main import main

main()

from form_monitoring.cli import main

main()
